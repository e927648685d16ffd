from __future__ import annotations

from datetime import UTC, datetime

import pytest

from patrol_verify.geo import GeoPoint
from patrol_verify.models import CheckpointSpec
from patrol_verify.route import PatrolRoute, create_route

T0 = datetime(2025, 1, 1, 22, 0, 0, tzinfo=UTC)


@pytest.fixture
def two_point_specs() -> list[CheckpointSpec]:
    return [
        CheckpointSpec(order=1, location=GeoPoint(0.0, 0.0), radius_m=10.0),
        CheckpointSpec(order=2, location=GeoPoint(0.0, 0.001), radius_m=10.0),
    ]


@pytest.fixture
def two_point_route(two_point_specs: list[CheckpointSpec]) -> PatrolRoute:
    return create_route("G-001", two_point_specs, route_id="R-1", started_at=T0)
