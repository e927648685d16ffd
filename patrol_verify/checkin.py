"""Check-in state machine gating one attempt through identity and geofence checks.

    idle --start--> awaiting_identity --identity ok--> awaiting_location --inside--> confirmed
                          |                                  |
                          +--identity failed / cancel--------+--cancel--> rejected

How identity is verified (face scan, manual code) is up to the caller; the
session only consumes the boolean result.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable

from patrol_verify.engine import VerificationOutcome, VerificationStatus, evaluate_position
from patrol_verify.errors import GuardMismatchError, InvalidTransitionError
from patrol_verify.geo import GeoPoint
from patrol_verify.models import CheckInAttempt, CheckInRecord, CheckInType, VerificationMethod
from patrol_verify.route import PatrolRoute
from patrol_verify.timeutils import ensure_aware, utc_now

logger = logging.getLogger(__name__)

RecordSink = Callable[[CheckInRecord], None]
OutcomeSink = Callable[[VerificationOutcome], None]


class CheckInState(str, Enum):
    IDLE = "idle"
    AWAITING_IDENTITY = "awaiting_identity"
    AWAITING_LOCATION = "awaiting_location"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    IDENTITY_VERIFICATION_FAILED = "identity_verification_failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({CheckInState.CONFIRMED, CheckInState.REJECTED})


class CheckInSession:
    """A single check-in attempt against one route.

    While active, the session is the only writer of its route. Once it reaches
    confirmed or rejected it accepts nothing further; start a new session for
    the next attempt.

    Args:
        route: Route the guard is patrolling.
        on_record: Called once with the CheckInRecord when confirmed.
        on_outcome: Called with every VerificationOutcome produced.
    """

    def __init__(
        self,
        route: PatrolRoute,
        *,
        on_record: RecordSink | None = None,
        on_outcome: OutcomeSink | None = None,
    ) -> None:
        self._route = route
        self._on_record = on_record
        self._on_outcome = on_outcome
        self._state = CheckInState.IDLE
        self._reason: RejectionReason | None = None
        self._guard_id: str | None = None
        self._method: VerificationMethod | None = None
        self._check_type = CheckInType.CHECK_IN
        self._started_at: datetime | None = None
        self._attempt: CheckInAttempt | None = None
        self._record: CheckInRecord | None = None

    @property
    def state(self) -> CheckInState:
        return self._state

    @property
    def reason(self) -> RejectionReason | None:
        return self._reason

    @property
    def record(self) -> CheckInRecord | None:
        return self._record

    @property
    def attempt(self) -> CheckInAttempt | None:
        """The most recent position sample submitted, as a check-in attempt."""
        return self._attempt

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def _require(self, *states: CheckInState) -> None:
        if self._state not in states:
            raise InvalidTransitionError(
                f"check-in is {self._state.value}, expected {' or '.join(s.value for s in states)}"
            )

    def _move(self, new_state: CheckInState) -> None:
        logger.info("Check-in for route %s: %s -> %s", self._route.route_id, self._state.value, new_state.value)
        self._state = new_state

    def start(
        self,
        guard_id: str,
        verification_method: VerificationMethod,
        check_type: CheckInType = CheckInType.CHECK_IN,
        at: datetime | None = None,
    ) -> None:
        """Begin the attempt and wait for the identity result.

        Raises:
            InvalidTransitionError: Session already started.
            GuardMismatchError: The route is assigned to another guard.
        """

        self._require(CheckInState.IDLE)
        if guard_id != self._route.guard_id:
            raise GuardMismatchError(f"route {self._route.route_id} is assigned to {self._route.guard_id!r}, not {guard_id!r}")
        self._guard_id = guard_id
        self._method = VerificationMethod(verification_method)
        self._check_type = CheckInType(check_type)
        self._started_at = ensure_aware(at) if at is not None else utc_now()
        self._move(CheckInState.AWAITING_IDENTITY)

    def identity_result(self, success: bool) -> None:
        self._require(CheckInState.AWAITING_IDENTITY)
        if success:
            self._move(CheckInState.AWAITING_LOCATION)
        else:
            self._reject(RejectionReason.IDENTITY_VERIFICATION_FAILED)

    def position_sample(self, position: GeoPoint, at: datetime) -> VerificationOutcome:
        """Test a location fix; confirm when it satisfies the route.

        An outside-geofence outcome leaves the session waiting for the next
        fix. There is no retry limit here.
        """

        self._require(CheckInState.AWAITING_LOCATION)
        assert self._guard_id is not None and self._method is not None
        at = ensure_aware(at)
        self._attempt = CheckInAttempt(
            guard_id=self._guard_id,
            claimed_position=position,
            verification_method=self._method,
            timestamp=at,
        )

        outcome = evaluate_position(self._route, position, at)
        if self._on_outcome is not None:
            self._on_outcome(outcome)

        if outcome.status is VerificationStatus.OUTSIDE_GEOFENCE:
            return outcome

        self._record = CheckInRecord(
            record_id=uuid.uuid4().hex,
            guard_id=self._guard_id,
            timestamp=at,
            type=self._check_type,
            location=position,
            verification_method=self._method,
            checkpoint_id=outcome.checkpoint.checkpoint_id if outcome.checkpoint is not None else None,
        )
        self._move(CheckInState.CONFIRMED)
        logger.info("Emitting check-in record %s (checkpoint %s)", self._record.record_id, self._record.checkpoint_id)
        if self._on_record is not None:
            self._on_record(self._record)
        return outcome

    def cancel(self) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(f"check-in already {self._state.value}")
        self._reject(RejectionReason.CANCELLED)

    def _reject(self, reason: RejectionReason) -> None:
        self._reason = reason
        self._move(CheckInState.REJECTED)
        logger.info("Check-in for route %s rejected: %s", self._route.route_id, reason.value)
