from __future__ import annotations

from datetime import UTC, datetime
from math import degrees

import pytest

from presence.core.clock import ClockController
from presence.core.geofence import GeofenceConfig, GeofenceValidator
from presence.core.ports import InMemorySessionStore
from presence.utils.geo import EARTH_RADIUS_M, Coordinate

REF = Coordinate(-6.562300216281189, 107.78160173799691)


def at(hh: int, mm: int = 0, ss: int = 0) -> datetime:
    return datetime(2026, 10, 19, hh, mm, ss, tzinfo=UTC)


def north_of(c: Coordinate, meters: float) -> Coordinate:
    # meridyen boyunca mesafe = R * Δφ
    return Coordinate(c.latitude + degrees(meters / EARTH_RADIUS_M), c.longitude)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(at(9))


@pytest.fixture
def validator():
    return GeofenceValidator(GeofenceConfig(reference_point=REF, radius_m=100.0))


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def controller(validator, store, clock):
    return ClockController(validator, store, clock=clock)
