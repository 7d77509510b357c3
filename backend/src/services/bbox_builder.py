from __future__ import annotations

import math
from typing import Tuple

from models import GeoPoint
from utils import haversine_m

BBox = Tuple[float, float, float, float]  # min_lon, min_lat, max_lon, max_lat

# padding so the haversine circle always fits
_PAD = 1.01


def expand_bbox_from_center(origin: GeoPoint, radius_m: float) -> BBox:
    """Rectangle around origin that contains every point within radius_m.

    When the circle reaches a pole it covers every longitude, so the box spans
    the whole globe and that latitude edge is clamped to the pole.
    """
    km = radius_m / 1000.0
    dlat = km / 110.574 * _PAD
    min_lat = max(-90.0, origin.lat - dlat)
    max_lat = min(90.0, origin.lat + dlat)

    north_pole_m = haversine_m(origin.lat, origin.lon, 90.0, origin.lon)
    south_pole_m = haversine_m(origin.lat, origin.lon, -90.0, origin.lon)
    if north_pole_m <= radius_m or south_pole_m <= radius_m:
        if north_pole_m <= radius_m:
            max_lat = 90.0
        if south_pole_m <= radius_m:
            min_lat = -90.0
        return (origin.lon - 180.0, min_lat, origin.lon + 180.0, max_lat)

    # widest longitude offset of a circle of angular radius d at latitude phi
    d = km / 6371.0
    cos_lat = math.cos(math.radians(origin.lat))
    ratio = math.sin(d) / cos_lat if cos_lat > 1e-12 else 2.0
    if ratio >= 1.0:
        dlon = 180.0
    else:
        dlon = min(180.0, math.degrees(math.asin(ratio)) * _PAD)
    return (origin.lon - dlon, min_lat, origin.lon + dlon, max_lat)


def bbox_contains(bbox: BBox, point: GeoPoint) -> bool:
    min_lon, min_lat, max_lon, max_lat = bbox
    if not (min_lat <= point.lat <= max_lat):
        return False
    if max_lon - min_lon >= 360.0:
        return True
    lon = point.lon
    # boxes crossing the antimeridian
    if min_lon < -180.0 and lon > 0:
        lon -= 360.0
    elif max_lon > 180.0 and lon < 0:
        lon += 360.0
    return min_lon <= lon <= max_lon
