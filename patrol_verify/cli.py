"""Command-line interface for patrol_verify.

Run:
    python -m patrol_verify inspect-route --route route.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from patrol_verify.checkin import CheckInSession, CheckInState
from patrol_verify.csv_io import load_position_samples, load_route_csv, write_outcomes_csv, write_records_csv
from patrol_verify.engine import VerificationOutcome, describe_outcome
from patrol_verify.errors import OutOfOrderError, PatrolError, RouteInvariantError
from patrol_verify.geo import GeoPoint
from patrol_verify.models import DEFAULT_TZ, CheckInRecord, CheckInType, VerificationMethod
from patrol_verify.replay import ReplayParams, replay_track
from patrol_verify.route import create_route, mark_visited, route_bounds, route_length_m, route_snapshot
from patrol_verify.timeutils import parse_dt, tzinfo_from_name, utc_now

logger = logging.getLogger(__name__)


def _position_arg(args: argparse.Namespace) -> GeoPoint | None:
    if args.lat is None or args.lon is None:
        return None
    return GeoPoint(args.lat, args.lon)


def _cmd_inspect_route(args: argparse.Namespace) -> int:
    specs, summary = load_route_csv(args.route)
    route = create_route("inspect", specs)
    position = _position_arg(args)
    snapshot = route_snapshot(route, position)
    bounds = route_bounds(route, position)

    print("### Checkpoints")
    for st in snapshot:
        dist = "" if st.distance_m is None else f", distance={st.distance_m:.1f}m"
        print(
            f"{st.order:>3}  {st.checkpoint_id}  {st.name or '-'}  "
            f"({st.location.latitude:.7f}, {st.location.longitude:.7f})  r={st.radius_m:g}m{dist}"
        )
    print()
    print("### Route")
    print(f"checkpoints={len(snapshot)}, length={route_length_m(route):.1f}m")
    if bounds is not None:
        print(f"lat=[{bounds.south}, {bounds.north}], lon=[{bounds.west}, {bounds.east}]")

    if args.json:
        payload = {
            "fieldnames": list(summary.fieldnames),
            "length_m": route_length_m(route),
            "checkpoints": [
                {
                    "checkpoint_id": st.checkpoint_id,
                    "order": st.order,
                    "name": st.name,
                    "latitude": st.location.latitude,
                    "longitude": st.location.longitude,
                    "radius_m": st.radius_m,
                    "distance_m": st.distance_m,
                }
                for st in snapshot
            ],
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    specs, _ = load_route_csv(args.route)
    samples, summary = load_position_samples(args.track)
    route = create_route(args.guard_id, specs)
    params = ReplayParams(
        tz_name=args.tz,
        max_accuracy_m=args.max_accuracy_m,
        stop_when_complete=not args.keep_going,
    )
    result = replay_track(route, samples, params)

    print(f"samples: total={summary.rows_total}, parsed={summary.rows_parsed}, used={result.samples_used}, "
          f"filtered={result.samples_filtered}")
    tz = tzinfo_from_name(args.tz)
    for step in result.visits:
        cp = step.outcome.checkpoint
        assert cp is not None and cp.visited_at is not None
        print(f"visited {cp.order:>3}  {cp.checkpoint_id}  at {cp.visited_at.astimezone(tz).isoformat(sep=' ')}")

    total = len(route.checkpoints)
    if result.completed:
        assert route.completed_at is not None
        print(f"route complete: {total}/{total} at {route.completed_at.astimezone(tz).isoformat(sep=' ')}")
    else:
        last = result.steps[-1].outcome if result.steps else None
        print(f"route incomplete: {len(result.visits)}/{total}")
        if last is not None:
            print(describe_outcome(last))

    if args.out:
        write_outcomes_csv((s.to_row() for s in result.steps), args.out, args.tz)
        print(f"exported: {args.out}")
    return 0 if result.completed else 1


def _cmd_check_in(args: argparse.Namespace) -> int:
    specs, _ = load_route_csv(args.route)
    at = parse_dt(args.at, args.tz) if args.at else utc_now()
    route = create_route(args.guard_id, specs, started_at=at)
    for cp in route.checkpoints[: max(0, args.visited)]:
        mark_visited(route, cp.checkpoint_id, at)

    records: list[CheckInRecord] = []
    outcomes: list[VerificationOutcome] = []
    session = CheckInSession(route, on_record=records.append, on_outcome=outcomes.append)
    session.start(args.guard_id, VerificationMethod(args.method), CheckInType(args.type), at=at)
    session.identity_result(args.identity == "pass")
    if session.state is CheckInState.AWAITING_LOCATION:
        session.position_sample(GeoPoint(args.lat, args.lon), at)

    for outcome in outcomes:
        print(describe_outcome(outcome))
    print(f"check-in state: {session.state.value}" + (f" ({session.reason.value})" if session.reason else ""))

    if records and args.records_out:
        write_records_csv(records, args.records_out, args.tz, append=True)
        print(f"record appended: {args.records_out}")
    return 0 if session.state is CheckInState.CONFIRMED else 1


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="patrol_verify")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ins = sub.add_parser("inspect-route", help="Show checkpoints, route length and bounds")
    p_ins.add_argument("--route", type=str, default="route.csv", help="Route CSV path")
    p_ins.add_argument("--lat", type=float, default=None, help="Current latitude (adds distances)")
    p_ins.add_argument("--lon", type=float, default=None, help="Current longitude (adds distances)")
    p_ins.add_argument("--json", action="store_true", help="Also print JSON")
    p_ins.set_defaults(func=_cmd_inspect_route)

    p_rep = sub.add_parser("replay", help="Replay a recorded track through the verification engine")
    p_rep.add_argument("--route", type=str, default="route.csv", help="Route CSV path")
    p_rep.add_argument("--track", type=str, default="Path.csv", help="Track CSV path (geoTime/latitude/longitude)")
    p_rep.add_argument("--guard-id", type=str, required=True, help="Guard the route is assigned to")
    p_rep.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Time zone (IANA) for output")
    p_rep.add_argument(
        "--max-accuracy-m",
        type=float,
        default=None,
        help="Ignore fixes whose horizontal accuracy is worse than this (meters)",
    )
    p_rep.add_argument(
        "--keep-going",
        action="store_true",
        help="Keep evaluating samples after the route completes",
    )
    p_rep.add_argument("--out", type=str, default=None, help="Export every outcome to this CSV")
    p_rep.set_defaults(func=_cmd_replay)

    p_chk = sub.add_parser("check-in", help="Run one check-in attempt at a position")
    p_chk.add_argument("--route", type=str, default="route.csv", help="Route CSV path")
    p_chk.add_argument("--guard-id", type=str, required=True, help="Guard checking in")
    p_chk.add_argument("--method", type=str, default="facial", choices=[m.value for m in VerificationMethod])
    p_chk.add_argument("--type", type=str, default="check-in", choices=[t.value for t in CheckInType])
    p_chk.add_argument("--identity", type=str, default="pass", choices=["pass", "fail"], help="Identity verifier result")
    p_chk.add_argument("--lat", type=float, required=True, help="Current latitude")
    p_chk.add_argument("--lon", type=float, required=True, help="Current longitude")
    p_chk.add_argument("--visited", type=int, default=0, help="Number of leading checkpoints already visited")
    p_chk.add_argument("--at", type=str, default=None, help="Attempt time, e.g. 2025-12-18 22:30:00 (default now)")
    p_chk.add_argument("--tz", type=str, default=DEFAULT_TZ, help="Time zone (IANA)")
    p_chk.add_argument("--records-out", type=str, default=None, help="Append the emitted record to this CSV")
    p_chk.set_defaults(func=_cmd_check_in)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    try:
        return int(args.func(args))
    except RouteInvariantError:
        raise
    except OutOfOrderError as exc:
        print(f"Visit checkpoints in order: {exc}", file=sys.stderr)
        return 2
    except (PatrolError, ValueError, OSError) as exc:
        logger.debug("Command %s failed", args.cmd, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
