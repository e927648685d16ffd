from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo


TZ: Final[str] = "Asia/Kolkata"


@dataclass(frozen=True, slots=True)
class Stop:
    name: str
    lat: float
    lon: float
    radius_m: float


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def generate_walk(
    *,
    stops: list[Stop],
    seed: int,
    start_local: datetime,
    steps_per_leg: int,
) -> list[dict[str, str]]:
    """Generate fake track rows walking from stop to stop with GPS jitter."""

    rng = random.Random(seed)
    cur = start_local.replace(tzinfo=ZoneInfo(TZ))
    out: list[dict[str, str]] = []

    # Start a little south-west of the first stop
    prev_lat = stops[0].lat - 0.0008
    prev_lon = stops[0].lon - 0.0008
    for stop in stops:
        for i in range(1, steps_per_leg + 1):
            frac = i / steps_per_leg
            lat = prev_lat + (stop.lat - prev_lat) * frac + rng.uniform(-0.00003, 0.00003)
            lon = prev_lon + (stop.lon - prev_lon) * frac + rng.uniform(-0.00003, 0.00003)
            cur = cur + timedelta(seconds=rng.uniform(5, 20))
            out.append(
                {
                    "geoTime": str(_epoch_ms(cur)),
                    "latitude": f"{lat:.7f}",
                    "longitude": f"{lon:.7f}",
                    "horizontalAccuracy": f"{rng.choice([3.0, 5.0, 8.0, 12.0, 35.0]):.1f}",
                }
            )
        # Linger at the stop
        cur = cur + timedelta(seconds=rng.uniform(30, 120))
        out.append(
            {
                "geoTime": str(_epoch_ms(cur)),
                "latitude": f"{stop.lat:.7f}",
                "longitude": f"{stop.lon:.7f}",
                "horizontalAccuracy": "4.0",
            }
        )
        prev_lat, prev_lon = stop.lat, stop.lon
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a demo route.csv and a matching Path.csv walk.")
    p.add_argument("--out-dir", type=str, default="sample_data", help="Output directory")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--steps-per-leg", type=int, default=12, help="Track points between consecutive stops")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 22:00:00",
        help="Start local time in Asia/Kolkata, e.g. '2025-01-01 22:00:00'",
    )
    args = p.parse_args()

    stops = [
        Stop("Main Gate", 12.9716000, 77.5946000, 15.0),
        Stop("Parking Lot B", 12.9722000, 77.5952000, 20.0),
        Stop("Warehouse Door", 12.9728000, 77.5946000, 10.0),
        Stop("Server Room", 12.9722000, 77.5938000, 10.0),
    ]
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    route_path = out_dir / "route.csv"
    with route_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["order", "checkpoint_id", "name", "latitude", "longitude", "radius_m"])
        w.writeheader()
        for i, stop in enumerate(stops, start=1):
            w.writerow(
                {
                    "order": i,
                    "checkpoint_id": f"cp-{i}",
                    "name": stop.name,
                    "latitude": f"{stop.lat:.7f}",
                    "longitude": f"{stop.lon:.7f}",
                    "radius_m": stop.radius_m,
                }
            )

    rows = generate_walk(
        stops=stops,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        steps_per_leg=args.steps_per_leg,
    )
    track_path = out_dir / "Path.csv"
    with track_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude", "horizontalAccuracy"])
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {route_path} (stops={len(stops)}), {track_path} (rows={len(rows)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
