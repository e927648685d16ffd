"""Replay a recorded location track through the verification engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from patrol_verify.csv_io import OutcomeRow
from patrol_verify.engine import VerificationOutcome, VerificationStatus, evaluate_position, is_route_complete
from patrol_verify.models import DEFAULT_TZ, PositionSample
from patrol_verify.route import PatrolRoute
from patrol_verify.timeutils import dt_from_epoch_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReplayParams:
    """Parameters controlling track replay."""

    tz_name: str = DEFAULT_TZ
    # Fixes reporting a worse horizontal accuracy than this are ignored.
    # Unknown accuracy (negative sentinel) is always accepted.
    max_accuracy_m: float | None = None
    stop_when_complete: bool = True


@dataclass(frozen=True, slots=True)
class ReplayStep:
    sample: PositionSample
    outcome: VerificationOutcome

    def to_row(self) -> OutcomeRow:
        cp = self.outcome.checkpoint
        return OutcomeRow(
            geo_time_ms=self.sample.geo_time_ms,
            latitude=self.sample.latitude,
            longitude=self.sample.longitude,
            status=self.outcome.status.value,
            checkpoint_id=cp.checkpoint_id if cp is not None else "",
            order=cp.order if cp is not None else None,
            remaining_distance_m=self.outcome.remaining_distance_m,
        )


@dataclass(slots=True)
class ReplayResult:
    steps: list[ReplayStep] = field(default_factory=list)
    samples_total: int = 0
    samples_used: int = 0
    samples_filtered: int = 0
    completed: bool = False

    @property
    def visits(self) -> list[ReplayStep]:
        return [s for s in self.steps if s.outcome.status is VerificationStatus.CHECKPOINT_VISITED]


def _accurate_enough(sample: PositionSample, max_accuracy_m: float | None) -> bool:
    if max_accuracy_m is None or sample.horizontal_accuracy_m < 0:
        return True
    return sample.horizontal_accuracy_m <= max_accuracy_m


def replay_track(route: PatrolRoute, samples: Sequence[PositionSample], params: ReplayParams) -> ReplayResult:
    """Feed samples (can be unsorted) through evaluate_position in time order.

    Args:
        route: Route to drive. It is mutated as checkpoints are visited.
        samples: Location fixes.
        params: Replay parameters.

    Returns:
        Every evaluated sample with its outcome, plus counters.
    """

    result = ReplayResult(samples_total=len(samples))
    for sample in sorted(samples, key=lambda s: s.geo_time_ms):
        if params.stop_when_complete and is_route_complete(route):
            break
        if not _accurate_enough(sample, params.max_accuracy_m):
            result.samples_filtered += 1
            continue
        at = dt_from_epoch_ms(sample.geo_time_ms, params.tz_name)
        outcome = evaluate_position(route, sample.position, at)
        result.samples_used += 1
        result.steps.append(ReplayStep(sample=sample, outcome=outcome))

    if result.samples_filtered:
        logger.warning(
            "Ignored %s of %s fixes with accuracy worse than %s m",
            result.samples_filtered,
            result.samples_total,
            params.max_accuracy_m,
        )
    result.completed = is_route_complete(route)
    return result
