"""Data models for checkpoints, location samples and check-in records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final

from patrol_verify.geo import GeoPoint


class VerificationMethod(str, Enum):
    """How the guard's identity was claimed for a check-in."""

    FACIAL = "facial"
    MANUAL = "manual"


class CheckInType(str, Enum):
    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"


@dataclass(frozen=True, slots=True)
class CheckpointSpec:
    """One checkpoint as supplied by the route source, before a route owns it.

    Attributes:
        order: Required visiting position, integer >= 1, unique within a route.
        location: Checkpoint coordinates.
        radius_m: Geofence tolerance in meters, must be > 0.
        checkpoint_id: Stable identifier. Generated from order when omitted.
        name: Display label (e.g. "Main Gate").
    """

    order: int
    location: GeoPoint
    radius_m: float
    checkpoint_id: str | None = None
    name: str = ""


@dataclass(slots=True)
class Checkpoint:
    """A patrol stop owned by exactly one route.

    Note:
        visited_at is set once, when visited goes from False to True, and is
        never rewritten afterwards.
    """

    checkpoint_id: str
    order: int
    location: GeoPoint
    radius_m: float
    name: str = ""
    visited: bool = False
    visited_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A single location fix from the device.

    Attributes:
        geo_time_ms: Unix epoch milliseconds.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        horizontal_accuracy_m: Horizontal accuracy in meters. -1.0 when unknown.
    """

    geo_time_ms: int
    latitude: float
    longitude: float
    horizontal_accuracy_m: float = -1.0

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class CheckInAttempt:
    """A single evaluation request for a check-in."""

    guard_id: str
    claimed_position: GeoPoint
    verification_method: VerificationMethod
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class CheckInRecord:
    """Durable outcome of a confirmed check-in. Never mutated after creation."""

    record_id: str
    guard_id: str
    timestamp: datetime
    type: CheckInType
    location: GeoPoint
    verification_method: VerificationMethod
    checkpoint_id: str | None = None


DEFAULT_TZ: Final[str] = "UTC"
