"""CSV input/output for route definitions, location tracks and audit records."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from patrol_verify.errors import InvalidRouteError
from patrol_verify.geo import GeoPoint
from patrol_verify.models import CheckInRecord, CheckpointSpec, PositionSample
from patrol_verify.timeutils import dt_from_epoch_ms, epoch_ms_from_dt, tzinfo_from_name

logger = logging.getLogger(__name__)

ROUTE_REQUIRED_FIELDS = ("order", "latitude", "longitude", "radius_m")

RECORD_FIELDS = [
    "record_id",
    "guard_id",
    "time_local",
    "epoch_ms",
    "type",
    "latitude",
    "longitude",
    "verification_method",
    "checkpoint_id",
]


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


@dataclass(frozen=True, slots=True)
class OutcomeRow:
    """One evaluated sample, flattened for export."""

    geo_time_ms: int
    latitude: float
    longitude: float
    status: str
    checkpoint_id: str
    order: int | None
    remaining_distance_m: float | None


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def load_route_csv(csv_path: str | Path) -> tuple[list[CheckpointSpec], CsvSummary]:
    """Load checkpoint definitions from a route CSV.

    Columns:
        - order, latitude, longitude, radius_m (required)
        - checkpoint_id, name (optional)

    Unlike track files, a malformed row is an error: silently dropping a
    checkpoint would shorten the patrol.

    Raises:
        InvalidRouteError: Missing columns or an unparseable row.
    """

    p = Path(csv_path)
    specs: list[CheckpointSpec] = []
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        missing = [name for name in ROUTE_REQUIRED_FIELDS if name not in fieldnames]
        if missing:
            raise InvalidRouteError(f"route CSV missing columns {missing}, got {list(fieldnames)}")

        for row in reader:
            try:
                specs.append(
                    CheckpointSpec(
                        order=_parse_int(row["order"]),
                        location=GeoPoint(_parse_float(row["latitude"]), _parse_float(row["longitude"])),
                        radius_m=_parse_float(row["radius_m"]),
                        checkpoint_id=(row.get("checkpoint_id") or "").strip() or None,
                        name=(row.get("name") or "").strip(),
                    )
                )
            except (ValueError, TypeError, AttributeError) as exc:
                raise InvalidRouteError(f"{p.name} line {reader.line_num}: cannot parse checkpoint row {row}") from exc

    summary = CsvSummary(rows_total=len(specs), rows_parsed=len(specs), rows_skipped=0, fieldnames=fieldnames)
    return specs, summary


def load_position_samples(csv_path: str | Path) -> tuple[list[PositionSample], CsvSummary]:
    """Load location fixes from an exported track CSV.

    The export uses these columns:
      - geoTime: epoch milliseconds
      - latitude/longitude: decimal degrees
      - horizontalAccuracy: meters, -1 when unknown (optional)

    Returns:
        (samples, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionSample] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    PositionSample(
                        geo_time_ms=_parse_int(row["geoTime"]),
                        latitude=_parse_float(row["latitude"]),
                        longitude=_parse_float(row["longitude"]),
                        horizontal_accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
                    )
                )
            except (KeyError, ValueError, TypeError, AttributeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("Skipped %s unparseable rows in %s", summary.rows_skipped, p.name)
    return parsed, summary


def write_records_csv(
    records: Iterable[CheckInRecord],
    out_path: str | Path,
    tz_name: str,
    append: bool = False,
) -> int:
    """Write check-in records for the audit/sync sink.

    Args:
        records: Records to write.
        out_path: Output CSV path.
        tz_name: Time zone used for the time_local column.
        append: Append to an existing file instead of replacing it. The header
            is written only when the file is new or empty.

    Returns:
        Number of records written.
    """

    tz = tzinfo_from_name(tz_name)
    p = Path(out_path)
    write_header = not append or not p.exists() or p.stat().st_size == 0
    count = 0
    with p.open("a" if append else "w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=RECORD_FIELDS)
        if write_header:
            w.writeheader()
        for r in records:
            w.writerow(
                {
                    "record_id": r.record_id,
                    "guard_id": r.guard_id,
                    "time_local": r.timestamp.astimezone(tz).isoformat(sep=" "),
                    "epoch_ms": epoch_ms_from_dt(r.timestamp),
                    "type": r.type.value,
                    "latitude": r.location.latitude,
                    "longitude": r.location.longitude,
                    "verification_method": r.verification_method.value,
                    "checkpoint_id": r.checkpoint_id or "",
                }
            )
            count += 1
    return count


def write_outcomes_csv(rows: Iterable[OutcomeRow], out_path: str | Path, tz_name: str) -> None:
    """Write evaluated samples (one per row) for review."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "time_local",
                "epoch_ms",
                "latitude",
                "longitude",
                "status",
                "checkpoint_id",
                "order",
                "remaining_m",
            ],
        )
        w.writeheader()
        for row in rows:
            w.writerow(
                {
                    "time_local": dt_from_epoch_ms(row.geo_time_ms, tz_name).isoformat(sep=" "),
                    "epoch_ms": row.geo_time_ms,
                    "latitude": row.latitude,
                    "longitude": row.longitude,
                    "status": row.status,
                    "checkpoint_id": row.checkpoint_id,
                    "order": "" if row.order is None else row.order,
                    "remaining_m": "" if row.remaining_distance_m is None else f"{row.remaining_distance_m:.1f}",
                }
            )
