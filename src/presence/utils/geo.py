from __future__ import annotations

from dataclasses import dataclass
from math import asin, atan2, cos, degrees, isfinite, radians, sin, sqrt

from ..core.errors import InvalidCoordinate

EARTH_RADIUS_M = 6371000.0


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self):
        validate_coordinate(self.latitude, self.longitude)


def validate_coordinate(latitude, longitude) -> tuple[float, float]:
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinate(latitude, longitude) from None
    # NaN karşılaştırmaları False döner; önce sonluluk kontrolü
    if not (isfinite(lat) and isfinite(lon)):
        raise InvalidCoordinate(latitude, longitude)
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise InvalidCoordinate(latitude, longitude)
    return lat, lon


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """İki GPS noktası arası Haversine mesafesi (metre)."""
    la1, lo1, la2, lo2 = map(radians, [a.latitude, a.longitude, b.latitude, b.longitude])
    dlat = la2 - la1
    dlon = lo2 - lo1
    h = sin(dlat / 2) ** 2 + cos(la1) * cos(la2) * sin(dlon / 2) ** 2
    # yuvarlama hatası h'yi 1'in üstüne itebilir
    c = 2 * asin(sqrt(min(1.0, h)))
    return EARTH_RADIUS_M * c


def bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """a'dan b'ye başlangıç yönü, [0, 360) derece."""
    φ1, φ2 = radians(a.latitude), radians(b.latitude)
    dλ = radians(b.longitude - a.longitude)
    y = sin(dλ) * cos(φ2)
    x = cos(φ1) * sin(φ2) - sin(φ1) * cos(φ2) * cos(dλ)
    return degrees(atan2(y, x)) % 360.0


def format_coordinates(c: Coordinate) -> str:
    return f"{c.latitude:.6f}, {c.longitude:.6f}"
