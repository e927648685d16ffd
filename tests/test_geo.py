from __future__ import annotations

import pytest

from patrol_verify.geo import GeoPoint, bounds_of, distance_m, is_within_geofence, path_length_m
from patrol_verify.models import Checkpoint


def test_distance_to_self_is_zero():
    for p in [GeoPoint(0.0, 0.0), GeoPoint(12.9716, 77.5946), GeoPoint(-89.9, 179.9)]:
        assert distance_m(p, p) == 0.0


def test_distance_within_epsilon_is_zero():
    assert distance_m(GeoPoint(10.0, 20.0), GeoPoint(10.0 + 1e-10, 20.0 - 1e-10)) == 0.0


def test_distance_is_symmetric():
    pairs = [
        (GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.001)),
        (GeoPoint(12.9716, 77.5946), GeoPoint(13.0827, 80.2707)),
        (GeoPoint(51.5, -0.12), GeoPoint(40.71, -74.0)),
    ]
    for a, b in pairs:
        assert distance_m(a, b) == distance_m(b, a)


def test_distance_known_value():
    # 0.001 degree of longitude on the equator
    assert distance_m(GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.001)) == pytest.approx(111.195, rel=1e-4)


def test_geofence_boundary_is_inclusive():
    center = GeoPoint(0.0, 0.0)
    point = GeoPoint(0.0, 0.001)
    d = distance_m(point, center)

    on_edge = Checkpoint(checkpoint_id="cp-1", order=1, location=center, radius_m=d)
    just_short = Checkpoint(checkpoint_id="cp-1", order=1, location=center, radius_m=d - 1e-6)

    assert is_within_geofence(point, on_edge) is True
    assert is_within_geofence(point, just_short) is False


def test_bounds_of():
    assert bounds_of([]) is None
    b = bounds_of([GeoPoint(1.0, 5.0), GeoPoint(-2.0, 7.0), GeoPoint(0.5, 6.0)])
    assert b is not None
    assert (b.south, b.west, b.north, b.east) == (-2.0, 5.0, 1.0, 7.0)
    assert b.center == GeoPoint(-0.5, 6.0)


def test_path_length_sums_legs():
    a, b, c = GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.001), GeoPoint(0.001, 0.001)
    assert path_length_m([a]) == 0.0
    assert path_length_m([a, b, c]) == pytest.approx(distance_m(a, b) + distance_m(b, c))
