"""Exceptions raised by the patrol verification core."""

from __future__ import annotations


class PatrolError(Exception):
    """Base class for all patrol verification errors."""


class InvalidRouteError(PatrolError, ValueError):
    """Route definition is empty, has duplicate orders/ids or a bad radius."""


class UnknownCheckpointError(PatrolError, LookupError):
    """Checkpoint id does not belong to the route."""

    def __init__(self, checkpoint_id: str) -> None:
        super().__init__(f"unknown checkpoint: {checkpoint_id!r}")
        self.checkpoint_id = checkpoint_id


class OutOfOrderError(PatrolError):
    """A checkpoint was marked before an earlier one in the route."""

    def __init__(self, checkpoint_id: str, expected_id: str) -> None:
        super().__init__(f"checkpoint {checkpoint_id!r} visited out of order, expected {expected_id!r}")
        self.checkpoint_id = checkpoint_id
        self.expected_id = expected_id


class InvalidTransitionError(PatrolError):
    """Check-in session received an event that is not valid in its current state."""


class GuardMismatchError(PatrolError):
    """A guard tried to check in on a route assigned to someone else."""


class RouteInvariantError(PatrolError, RuntimeError):
    """Internal bug: the engine produced an illegal model call."""
