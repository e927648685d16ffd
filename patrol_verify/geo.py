"""Geospatial primitives (no external dependencies)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from patrol_verify.models import Checkpoint

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters
SAME_POINT_EPSILON_DEG = 1e-9


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS-84 latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class GeoBounds:
    """Axis-aligned bounding box in degrees."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.south + self.north) / 2.0, (self.west + self.east) / 2.0)


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute Haversine distance in meters between two points.

    Args:
        a: First point.
        b: Second point.

    Returns:
        Distance in meters. Exactly 0.0 when both coordinates agree within
        1e-9 degrees.
    """

    d_lat = b.latitude - a.latitude
    d_lon = b.longitude - a.longitude
    if abs(d_lat) <= SAME_POINT_EPSILON_DEG and abs(d_lon) <= SAME_POINT_EPSILON_DEG:
        return 0.0

    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(d_lat)
    d_lambda = math.radians(d_lon)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def is_within_geofence(point: GeoPoint, checkpoint: Checkpoint) -> bool:
    """Check whether a point is inside or on the boundary of a checkpoint's geofence."""

    return distance_m(point, checkpoint.location) <= checkpoint.radius_m


def bounds_of(points: Iterable[GeoPoint]) -> GeoBounds | None:
    """Bounding box around points, or None if there are none."""

    pts = list(points)
    if not pts:
        return None
    lats = [p.latitude for p in pts]
    lons = [p.longitude for p in pts]
    return GeoBounds(south=min(lats), west=min(lons), north=max(lats), east=max(lons))


def path_length_m(points: Sequence[GeoPoint]) -> float:
    """Length of the polyline through points, in order."""

    return sum(distance_m(points[i - 1], points[i]) for i in range(1, len(points)))
