"""Geometry helpers for distance and coordinate checks."""

import math
from typing import Iterable, Optional, Sequence, Tuple

from map_search.models import BoundingBox, LngLat

EARTH_RADIUS_METERS = 6371e3


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_from(center: Optional[LngLat], coordinates: Optional[Tuple[float, float]]) -> Optional[float]:
    if center is None or coordinates is None:
        return None
    lng, lat = coordinates
    return haversine_meters(center.lat, center.lng, lat, lng)


def is_valid_coordinates(coordinates: Optional[Sequence[float]]) -> bool:
    """Finite (lng, lat) pair that is not the (0, 0) placeholder."""
    if coordinates is None or len(coordinates) != 2:
        return False
    lng, lat = coordinates
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return False
    return not (lng == 0 and lat == 0)


def is_precise(coordinates: Optional[Sequence[float]]) -> bool:
    """Both axes non-zero and finite; anything else still needs a geocode."""
    if not is_valid_coordinates(coordinates):
        return False
    lng, lat = coordinates
    return lng != 0 and lat != 0


def bounds_for(points: Iterable[Optional[Tuple[float, float]]]) -> Optional[BoundingBox]:
    lngs = []
    lats = []
    for point in points:
        if not is_valid_coordinates(point):
            continue
        lngs.append(point[0])
        lats.append(point[1])
    if not lngs:
        return None
    return BoundingBox(west=min(lngs), south=min(lats), east=max(lngs), north=max(lats))
