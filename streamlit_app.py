from __future__ import annotations

from datetime import datetime
from pathlib import Path

import streamlit as st

from patrol_verify.checkin import CheckInSession, CheckInState
from patrol_verify.csv_io import load_route_csv, write_records_csv
from patrol_verify.engine import VerificationOutcome, describe_outcome, is_route_complete
from patrol_verify.errors import PatrolError
from patrol_verify.geo import GeoPoint
from patrol_verify.models import DEFAULT_TZ, CheckInRecord, CheckInType, CheckpointSpec, VerificationMethod
from patrol_verify.route import CheckpointState, create_route, next_checkpoint, route_progress, route_snapshot
from patrol_verify.timeutils import tzinfo_from_name

STATE_COLORS = {
    CheckpointState.VISITED: "#22c55e",
    CheckpointState.NEXT: "#f59e0b",
    CheckpointState.UPCOMING: "#6b7280",
}
POSITION_COLOR = "#3b82f6"


@st.cache_data(show_spinner=False)
def _load_specs(route_csv: str, mtime: float) -> list[CheckpointSpec]:
    _ = mtime  # part of cache key so updated files reload automatically
    specs, _summary = load_route_csv(route_csv)
    return specs


def _reset(route_csv: str, guard_id: str) -> None:
    p = Path(route_csv)
    specs = _load_specs(route_csv, p.stat().st_mtime)
    st.session_state.route = create_route(guard_id, specs)
    st.session_state.session = None
    st.session_state.records = []
    st.session_state.messages = []


def _on_outcome(outcome: VerificationOutcome) -> None:
    st.session_state.messages.append(describe_outcome(outcome))


def _on_record(record: CheckInRecord) -> None:
    st.session_state.records.append(record)


def main() -> None:
    st.set_page_config(page_title="Patrol check-in simulator", layout="wide")
    st.title("Patrol check-in simulator")

    with st.sidebar:
        st.subheader("Route")
        tz_name = st.text_input("Time zone (IANA)", value=DEFAULT_TZ)
        route_csv = st.text_input("route.csv path", value="route.csv")
        guard_id = st.text_input("Guard id", value="G-001")
        records_csv = st.text_input("records.csv output path", value="records.csv")

        if st.button("Load / restart patrol", type="primary", use_container_width=True):
            if not Path(route_csv).exists():
                st.error(f"File not found: {route_csv!r}")
            else:
                try:
                    _reset(route_csv, guard_id)
                except PatrolError as exc:
                    st.error(str(exc))

        st.subheader("Current position")
        lat = st.number_input("latitude", value=12.9716000, format="%.7f")
        lon = st.number_input("longitude", value=77.5946000, format="%.7f")
        method = st.selectbox("Verification method", [m.value for m in VerificationMethod])
        check_type = st.selectbox("Record type", [t.value for t in CheckInType])

    route = st.session_state.get("route")
    if route is None:
        st.info("Load a route CSV from the sidebar to start a patrol.")
        return

    tz = tzinfo_from_name(tz_name)
    position = GeoPoint(float(lat), float(lon))
    session: CheckInSession | None = st.session_state.session

    st.subheader("Check-in")
    c1, c2, c3, c4 = st.columns(4)
    if c1.button("Start check-in", disabled=session is not None and not session.is_terminal):
        session = CheckInSession(route, on_record=_on_record, on_outcome=_on_outcome)
        try:
            session.start(guard_id, VerificationMethod(method), CheckInType(check_type))
        except PatrolError as exc:
            st.error(str(exc))
            session = None
        st.session_state.session = session
        if session is not None:
            st.rerun()
    awaiting_identity = session is not None and session.state is CheckInState.AWAITING_IDENTITY
    if c2.button("Identity verified", disabled=not awaiting_identity):
        session.identity_result(True)
        st.rerun()
    if c3.button("Identity failed", disabled=not awaiting_identity):
        session.identity_result(False)
        st.rerun()
    if c4.button("Cancel", disabled=session is None or session.is_terminal):
        session.cancel()
        st.rerun()

    awaiting_location = session is not None and session.state is CheckInState.AWAITING_LOCATION
    if st.button("Submit position sample", disabled=not awaiting_location):
        session.position_sample(position, datetime.now(tz))
        st.rerun()

    if session is not None:
        state_text = session.state.value + (f" ({session.reason.value})" if session.reason else "")
        st.caption(f"Session state: {state_text}")
    for msg in st.session_state.messages[-5:]:
        st.write(msg)

    progress = route_progress(route)
    target = next_checkpoint(route)
    st.subheader("Progress")
    m1, m2, m3 = st.columns(3)
    m1.metric("Visited", f"{progress.visited}/{progress.total}")
    m2.metric("Next checkpoint", "-" if target is None else f"{target.order} {target.name}".strip())
    m3.metric("Route complete", "yes" if is_route_complete(route) else "no")
    st.progress(progress.fraction)

    snapshot = route_snapshot(route, position)
    st.map(
        {
            "lat": [s.location.latitude for s in snapshot] + [position.latitude],
            "lon": [s.location.longitude for s in snapshot] + [position.longitude],
            "color": [STATE_COLORS[s.state] for s in snapshot] + [POSITION_COLOR],
            "size": [s.radius_m for s in snapshot] + [3.0],
        },
        latitude="lat",
        longitude="lon",
        color="color",
        size="size",
    )

    rows = [
        {
            "order": s.order,
            "checkpoint_id": s.checkpoint_id,
            "name": s.name,
            "state": s.state.value,
            "radius_m": s.radius_m,
            "distance_m": round(s.distance_m or 0.0, 1),
            "visited_at": s.visited_at.astimezone(tz).isoformat(sep=" ") if s.visited_at else "",
        }
        for s in snapshot
    ]
    st.dataframe(rows, use_container_width=True)

    records: list[CheckInRecord] = st.session_state.records
    st.subheader(f"Records ({len(records)})")
    if records:
        st.dataframe(
            [
                {
                    "record_id": r.record_id,
                    "time": r.timestamp.astimezone(tz).isoformat(sep=" "),
                    "type": r.type.value,
                    "method": r.verification_method.value,
                    "checkpoint_id": r.checkpoint_id or "",
                }
                for r in records
            ],
            use_container_width=True,
        )
        if st.button("Export records.csv"):
            n = write_records_csv(records, records_csv, tz_name)
            st.success(f"Exported {n} records to {records_csv}")


if __name__ == "__main__":
    main()
