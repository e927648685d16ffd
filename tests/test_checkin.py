from __future__ import annotations

from datetime import timedelta

import pytest

from patrol_verify.checkin import CheckInSession, CheckInState, RejectionReason
from patrol_verify.engine import VerificationStatus, evaluate_position
from patrol_verify.errors import GuardMismatchError, InvalidTransitionError
from patrol_verify.geo import GeoPoint
from patrol_verify.models import CheckInType, VerificationMethod

from tests.conftest import T0

INSIDE_FIRST = GeoPoint(0.0, 0.00005)
FAR_AWAY = GeoPoint(0.01, 0.01)


def _session(route):
    records, outcomes = [], []
    session = CheckInSession(route, on_record=records.append, on_outcome=outcomes.append)
    return session, records, outcomes


def test_identity_failure_rejects_without_record(two_point_route):
    session, records, outcomes = _session(two_point_route)
    session.start("G-001", VerificationMethod.FACIAL, at=T0)
    assert session.state is CheckInState.AWAITING_IDENTITY

    session.identity_result(False)

    assert session.state is CheckInState.REJECTED
    assert session.reason is RejectionReason.IDENTITY_VERIFICATION_FAILED
    assert session.record is None
    assert records == []
    assert outcomes == []
    assert not two_point_route.checkpoints[0].visited


@pytest.mark.parametrize("method", [VerificationMethod.FACIAL, VerificationMethod.MANUAL])
def test_confirmed_check_in_emits_one_record(two_point_route, method):
    session, records, _ = _session(two_point_route)
    session.start("G-001", method, at=T0)
    session.identity_result(True)
    assert session.state is CheckInState.AWAITING_LOCATION

    at = T0 + timedelta(seconds=30)
    outcome = session.position_sample(INSIDE_FIRST, at)

    assert outcome.status is VerificationStatus.CHECKPOINT_VISITED
    assert session.state is CheckInState.CONFIRMED
    assert len(records) == 1
    record = records[0]
    assert record is session.record
    assert record.verification_method is method
    assert record.guard_id == "G-001"
    assert record.checkpoint_id == "cp-1"
    assert record.location == INSIDE_FIRST
    assert record.timestamp == at
    assert record.type is CheckInType.CHECK_IN


def test_outside_sample_keeps_waiting_then_confirms(two_point_route):
    session, records, outcomes = _session(two_point_route)
    session.start("G-001", VerificationMethod.MANUAL, at=T0)
    session.identity_result(True)

    for i in range(3):
        outcome = session.position_sample(FAR_AWAY, T0 + timedelta(seconds=i))
        assert outcome.status is VerificationStatus.OUTSIDE_GEOFENCE
        assert session.state is CheckInState.AWAITING_LOCATION
    assert records == []
    assert session.attempt.claimed_position == FAR_AWAY

    session.position_sample(INSIDE_FIRST, T0 + timedelta(seconds=10))
    assert session.state is CheckInState.CONFIRMED
    assert len(records) == 1
    assert [o.status for o in outcomes] == [VerificationStatus.OUTSIDE_GEOFENCE] * 3 + [
        VerificationStatus.CHECKPOINT_VISITED
    ]


def test_check_out_on_completed_route(two_point_route):
    evaluate_position(two_point_route, GeoPoint(0.0, 0.0), T0)
    evaluate_position(two_point_route, GeoPoint(0.0, 0.001), T0)

    session, records, _ = _session(two_point_route)
    session.start("G-001", VerificationMethod.FACIAL, CheckInType.CHECK_OUT, at=T0)
    session.identity_result(True)
    outcome = session.position_sample(FAR_AWAY, T0 + timedelta(minutes=1))

    assert outcome.status is VerificationStatus.ROUTE_COMPLETE
    assert session.state is CheckInState.CONFIRMED
    assert records[0].type is CheckInType.CHECK_OUT
    assert records[0].checkpoint_id is None


@pytest.mark.parametrize("steps", [0, 1, 2])
def test_cancel_from_any_open_state(two_point_route, steps):
    session, records, _ = _session(two_point_route)
    if steps >= 1:
        session.start("G-001", VerificationMethod.FACIAL, at=T0)
    if steps >= 2:
        session.identity_result(True)

    session.cancel()

    assert session.state is CheckInState.REJECTED
    assert session.reason is RejectionReason.CANCELLED
    assert records == []


def test_terminal_states_accept_nothing(two_point_route):
    session, _, _ = _session(two_point_route)
    session.start("G-001", VerificationMethod.FACIAL, at=T0)
    session.identity_result(True)
    session.position_sample(INSIDE_FIRST, T0)
    assert session.is_terminal

    with pytest.raises(InvalidTransitionError):
        session.cancel()
    with pytest.raises(InvalidTransitionError):
        session.identity_result(True)
    with pytest.raises(InvalidTransitionError):
        session.position_sample(INSIDE_FIRST, T0)
    with pytest.raises(InvalidTransitionError):
        session.start("G-001", VerificationMethod.FACIAL)
    assert session.state is CheckInState.CONFIRMED


def test_events_out_of_sequence_are_rejected(two_point_route):
    session, _, _ = _session(two_point_route)
    with pytest.raises(InvalidTransitionError):
        session.identity_result(True)
    with pytest.raises(InvalidTransitionError):
        session.position_sample(INSIDE_FIRST, T0)

    session.start("G-001", VerificationMethod.FACIAL, at=T0)
    with pytest.raises(InvalidTransitionError):
        session.position_sample(INSIDE_FIRST, T0)
    assert session.state is CheckInState.AWAITING_IDENTITY
    assert not two_point_route.checkpoints[0].visited


def test_other_guard_cannot_check_in(two_point_route):
    session, _, _ = _session(two_point_route)
    with pytest.raises(GuardMismatchError):
        session.start("G-999", VerificationMethod.MANUAL)
    assert session.state is CheckInState.IDLE
