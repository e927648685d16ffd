"""Patrol route model: ordered checkpoints and their completion state."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from patrol_verify.errors import InvalidRouteError, OutOfOrderError, UnknownCheckpointError
from patrol_verify.geo import GeoBounds, GeoPoint, bounds_of, distance_m, path_length_m
from patrol_verify.models import Checkpoint, CheckpointSpec
from patrol_verify.timeutils import ensure_aware, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoutePolicy:
    """Options recognized at route creation.

    Sequential visiting is fixed policy: relaxing it would change how the
    engine picks its target, so False is rejected rather than honored.
    """

    sequential_visit_required: bool = True


@dataclass(slots=True)
class PatrolRoute:
    """An ordered set of checkpoints assigned to one guard for one patrol.

    Checkpoints are kept sorted by ascending order. completed_at is set exactly
    when the last checkpoint is visited and never cleared.
    """

    route_id: str
    guard_id: str
    started_at: datetime
    checkpoints: list[Checkpoint]
    completed_at: datetime | None = None
    policy: RoutePolicy = field(default_factory=RoutePolicy)

    def get(self, checkpoint_id: str) -> Checkpoint:
        for cp in self.checkpoints:
            if cp.checkpoint_id == checkpoint_id:
                return cp
        raise UnknownCheckpointError(checkpoint_id)


@dataclass(frozen=True, slots=True)
class MarkResult:
    """Outcome of mark_visited."""

    checkpoint: Checkpoint
    newly_visited: bool
    route_completed: bool


@dataclass(frozen=True, slots=True)
class RouteProgress:
    visited: int
    total: int

    @property
    def fraction(self) -> float:
        return self.visited / self.total if self.total else 0.0


class CheckpointState(str, Enum):
    VISITED = "visited"
    NEXT = "next"
    UPCOMING = "upcoming"


@dataclass(frozen=True, slots=True)
class CheckpointStatus:
    """Read-only view of one checkpoint for display consumers (map, lists)."""

    checkpoint_id: str
    order: int
    name: str
    location: GeoPoint
    radius_m: float
    state: CheckpointState
    visited_at: datetime | None
    distance_m: float | None = None


def create_route(
    guard_id: str,
    checkpoints: Sequence[CheckpointSpec],
    *,
    route_id: str | None = None,
    started_at: datetime | None = None,
    policy: RoutePolicy | None = None,
) -> PatrolRoute:
    """Build a route with every checkpoint unvisited.

    Args:
        guard_id: Guard the route is assigned to.
        checkpoints: Checkpoint definitions, in any order.
        route_id: Route identifier. Random when omitted.
        started_at: Creation time. Defaults to now (UTC).
        policy: Route options. Only sequential visiting is supported.

    Returns:
        The new route.

    Raises:
        InvalidRouteError: Empty input, duplicate order or id, order < 1,
            non-positive radius, or a non-sequential policy.
    """

    policy = policy or RoutePolicy()
    if not policy.sequential_visit_required:
        raise InvalidRouteError("sequential_visit_required is fixed policy and cannot be disabled")
    if not checkpoints:
        raise InvalidRouteError("route needs at least one checkpoint")

    seen_orders: set[int] = set()
    seen_ids: set[str] = set()
    built: list[Checkpoint] = []
    for spec in checkpoints:
        if isinstance(spec.order, bool) or not isinstance(spec.order, int) or spec.order < 1:
            raise InvalidRouteError(f"checkpoint order must be an integer >= 1, got {spec.order!r}")
        if spec.order in seen_orders:
            raise InvalidRouteError(f"duplicate checkpoint order: {spec.order}")
        if not math.isfinite(spec.radius_m) or spec.radius_m <= 0:
            raise InvalidRouteError(f"checkpoint {spec.order} radius must be > 0, got {spec.radius_m!r}")
        checkpoint_id = spec.checkpoint_id or f"cp-{spec.order}"
        if checkpoint_id in seen_ids:
            raise InvalidRouteError(f"duplicate checkpoint id: {checkpoint_id!r}")
        seen_orders.add(spec.order)
        seen_ids.add(checkpoint_id)
        built.append(
            Checkpoint(
                checkpoint_id=checkpoint_id,
                order=spec.order,
                location=spec.location,
                radius_m=float(spec.radius_m),
                name=spec.name,
            )
        )

    built.sort(key=lambda cp: cp.order)
    route = PatrolRoute(
        route_id=route_id or uuid.uuid4().hex,
        guard_id=guard_id,
        started_at=ensure_aware(started_at) if started_at is not None else utc_now(),
        checkpoints=built,
        policy=policy,
    )
    logger.info("Created route %s for guard %s with %s checkpoints", route.route_id, guard_id, len(built))
    return route


def next_checkpoint(route: PatrolRoute) -> Checkpoint | None:
    """The unvisited checkpoint with the smallest order, or None when all are visited."""

    for cp in route.checkpoints:
        if not cp.visited:
            return cp
    return None


def mark_visited(route: PatrolRoute, checkpoint_id: str, at: datetime) -> MarkResult:
    """Record a visit to a checkpoint.

    Re-marking an already visited checkpoint succeeds without changing anything.

    Raises:
        UnknownCheckpointError: checkpoint_id is not part of the route.
        OutOfOrderError: An earlier checkpoint is still unvisited.
    """

    cp = route.get(checkpoint_id)
    if cp.visited:
        return MarkResult(checkpoint=cp, newly_visited=False, route_completed=route.completed_at is not None)

    expected = next_checkpoint(route)
    # cp is unvisited, so expected cannot be None here
    if expected is not None and expected.checkpoint_id != cp.checkpoint_id:
        raise OutOfOrderError(cp.checkpoint_id, expected.checkpoint_id)

    at = ensure_aware(at)
    cp.visited = True
    cp.visited_at = at
    logger.info("Route %s: checkpoint %s (order %s) visited", route.route_id, cp.checkpoint_id, cp.order)

    if next_checkpoint(route) is None:
        route.completed_at = at
        logger.info("Route %s completed at %s", route.route_id, at.isoformat())
    return MarkResult(checkpoint=cp, newly_visited=True, route_completed=route.completed_at is not None)


def route_progress(route: PatrolRoute) -> RouteProgress:
    return RouteProgress(visited=sum(1 for cp in route.checkpoints if cp.visited), total=len(route.checkpoints))


def route_snapshot(route: PatrolRoute, position: GeoPoint | None = None) -> list[CheckpointStatus]:
    """Per-checkpoint display state, optionally with distance from a position.

    Visited and next are distinct: the next checkpoint is never reported as
    visited before it actually is.
    """

    target = next_checkpoint(route)
    out: list[CheckpointStatus] = []
    for cp in route.checkpoints:
        if cp.visited:
            state = CheckpointState.VISITED
        elif target is not None and cp.checkpoint_id == target.checkpoint_id:
            state = CheckpointState.NEXT
        else:
            state = CheckpointState.UPCOMING
        out.append(
            CheckpointStatus(
                checkpoint_id=cp.checkpoint_id,
                order=cp.order,
                name=cp.name,
                location=cp.location,
                radius_m=cp.radius_m,
                state=state,
                visited_at=cp.visited_at,
                distance_m=distance_m(position, cp.location) if position is not None else None,
            )
        )
    return out


def route_bounds(route: PatrolRoute, position: GeoPoint | None = None) -> GeoBounds | None:
    """Box around all checkpoints and, when given, the current position."""

    points = [cp.location for cp in route.checkpoints]
    if position is not None:
        points.append(position)
    return bounds_of(points)


def route_length_m(route: PatrolRoute) -> float:
    """Walking distance along checkpoints in visiting order (straight legs)."""

    return path_length_m([cp.location for cp in route.checkpoints])
