# horiohop/services/geo.py
import math

from horiohop.models.routing import Coordinate

EARTH_RADIUS_M = 6_371_000.0


def haversine_distance_m(a: Coordinate, b: Coordinate) -> float:
    """
    Compute great-circle distance between two points (lat/lng in degrees), in metres.
    """
    lat1 = math.radians(a.lat)
    lng1 = math.radians(a.lng)
    lat2 = math.radians(b.lat)
    lng2 = math.radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def round_km(distance_m: float) -> float:
    """Distance in kilometres to one decimal, halves rounded up."""
    return math.floor(distance_m / 100.0 + 0.5) / 10.0
