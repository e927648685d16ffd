"""Patrol verification engine: live position -> route state changes.

The engine only ever tests the single next-required checkpoint. It never scans
the whole route for the nearest stop, so a guard cannot be credited for a
later checkpoint while an earlier one is still open.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from patrol_verify.errors import OutOfOrderError, RouteInvariantError, UnknownCheckpointError
from patrol_verify.geo import GeoPoint, distance_m, is_within_geofence
from patrol_verify.models import Checkpoint
from patrol_verify.route import PatrolRoute, mark_visited, next_checkpoint

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    ROUTE_COMPLETE = "route_complete"
    CHECKPOINT_VISITED = "checkpoint_visited"
    OUTSIDE_GEOFENCE = "outside_geofence"


@dataclass(frozen=True, slots=True)
class VerificationOutcome:
    """Result of testing a position against the route's next required checkpoint.

    Attributes:
        status: What happened.
        checkpoint: Copy of the targeted checkpoint as of this evaluation.
            None when the route was already complete.
        remaining_distance_m: Meters still to walk to reach the geofence edge.
            0.0 on a visit, None when the route was already complete.
    """

    status: VerificationStatus
    checkpoint: Checkpoint | None = None
    remaining_distance_m: float | None = None

    @property
    def accepted(self) -> bool:
        return self.status is not VerificationStatus.OUTSIDE_GEOFENCE


def evaluate_position(route: PatrolRoute, position: GeoPoint, at: datetime) -> VerificationOutcome:
    """Evaluate one position sample against the route.

    Mutates the route only when the next checkpoint's geofence contains the
    position. Repeated outside samples are pure reads.

    Raises:
        RouteInvariantError: The model rejected the engine's own target.
    """

    target = next_checkpoint(route)
    if target is None:
        return VerificationOutcome(status=VerificationStatus.ROUTE_COMPLETE)

    if is_within_geofence(position, target):
        try:
            mark_visited(route, target.checkpoint_id, at)
        except (UnknownCheckpointError, OutOfOrderError) as exc:
            logger.exception("Route %s: engine targeted an invalid checkpoint %s", route.route_id, target.checkpoint_id)
            raise RouteInvariantError(str(exc)) from exc
        return VerificationOutcome(
            status=VerificationStatus.CHECKPOINT_VISITED,
            checkpoint=dataclasses.replace(target),
            remaining_distance_m=0.0,
        )

    remaining = distance_m(position, target.location) - target.radius_m
    logger.debug(
        "Route %s: %.1f m outside checkpoint %s (order %s)",
        route.route_id,
        remaining,
        target.checkpoint_id,
        target.order,
    )
    return VerificationOutcome(
        status=VerificationStatus.OUTSIDE_GEOFENCE,
        checkpoint=dataclasses.replace(target),
        remaining_distance_m=remaining,
    )


def is_route_complete(route: PatrolRoute) -> bool:
    return route.completed_at is not None


def describe_outcome(outcome: VerificationOutcome) -> str:
    """Human guidance for an outcome, as shown to the guard."""

    cp = outcome.checkpoint
    if outcome.status is VerificationStatus.ROUTE_COMPLETE:
        return "Patrol route complete"
    assert cp is not None
    label = cp.name or cp.checkpoint_id
    if outcome.status is VerificationStatus.CHECKPOINT_VISITED:
        return f"Checkpoint {cp.order} ({label}) verified"
    return f"Move closer to checkpoint {cp.order} ({label}): {outcome.remaining_distance_m:.0f} m to go"
