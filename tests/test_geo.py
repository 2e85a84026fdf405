import math

import pytest

from presence.core.errors import InvalidCoordinate
from presence.utils.geo import Coordinate, bearing_deg, format_coordinates, haversine_m


def test_distance_to_self_is_zero():
    c = Coordinate(41.015137, 28.979530)
    assert haversine_m(c, c) == 0.0


def test_hundredth_degree_of_latitude():
    a = Coordinate(0.0, 0.0)
    b = Coordinate(0.01, 0.0)
    # R * 0.01° = 1111.95 m
    assert haversine_m(a, b) == pytest.approx(6371000.0 * math.radians(0.01), abs=1.0)
    assert haversine_m(a, b) == pytest.approx(1112.0, abs=1.0)


def test_distance_is_symmetric():
    a = Coordinate(-6.5623, 107.7816)
    b = Coordinate(-6.5701, 107.7902)
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a))


def test_antipodal_points_do_not_overflow_asin():
    d = haversine_m(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
    assert d == pytest.approx(math.pi * 6371000.0)


@pytest.mark.parametrize(
    "lat, lon",
    [(90.0001, 0.0), (-91, 0), (0, 180.5), (0, -181), (float("nan"), 0), (0, float("inf")), ("abc", 0)],
)
def test_out_of_range_coordinates_are_rejected(lat, lon):
    with pytest.raises(InvalidCoordinate):
        Coordinate(lat, lon)


def test_bearing_cardinal_directions():
    o = Coordinate(0.0, 0.0)
    assert bearing_deg(o, Coordinate(1.0, 0.0)) == pytest.approx(0.0)
    assert bearing_deg(o, Coordinate(0.0, 1.0)) == pytest.approx(90.0)
    assert bearing_deg(o, Coordinate(-1.0, 0.0)) == pytest.approx(180.0)
    assert bearing_deg(o, Coordinate(0.0, -1.0)) == pytest.approx(270.0)


def test_format_coordinates_six_decimals():
    assert format_coordinates(Coordinate(-6.562300216281189, 107.78160173799691)) == "-6.562300, 107.781602"
