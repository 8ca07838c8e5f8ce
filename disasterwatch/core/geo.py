from __future__ import annotations

import math
from typing import Any, List, Optional, Tuple

EARTH_RADIUS_M = 6371000.0

# slack so boundary points survive float rounding in the prefilter
_PAD_DEG = 1e-6

# (minLng, maxLng); a window lists one or two of these, or None for all longitudes
LngRange = Tuple[float, float]


def safe_float(x: Any) -> Optional[float]:
    if isinstance(x, bool):
        return None
    try:
        f = float(x)
        if math.isfinite(f):
            return f
    except Exception:
        return None
    return None


def valid_coordinates(lng: Any, lat: Any) -> bool:
    """Finite, in range, and not the (0,0) "missing" sentinel."""
    x = safe_float(lng)
    y = safe_float(lat)
    if x is None or y is None:
        return False
    if not (-180.0 <= x <= 180.0 and -90.0 <= y <= 90.0):
        return False
    return not (x == 0.0 and y == 0.0)


def haversine_m(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    R = EARTH_RADIUS_M
    lat1, lon1 = math.radians(a_lat), math.radians(a_lng)
    lat2, lon2 = math.radians(b_lat), math.radians(b_lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    x = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * R * math.asin(math.sqrt(x))


def radius_window(
    lat: float, lng: float, radius_m: float
) -> Tuple[float, float, Optional[List[LngRange]]]:
    """
    Prefilter window for a haversine radius search.

    Returns (minLat, maxLat, lng_ranges). lng_ranges is None when the circle
    reaches a pole or spans every meridian; otherwise it holds one range, or
    two when the circle crosses the antimeridian.
    """
    ang = max(0.0, radius_m) / EARTH_RADIUS_M
    dlat = math.degrees(ang) + _PAD_DEG
    min_lat = max(-90.0, lat - dlat)
    max_lat = min(90.0, lat + dlat)

    if lat + dlat >= 90.0 or lat - dlat <= -90.0:
        return min_lat, max_lat, None

    # widest longitude offset of a spherical cap centred at `lat`
    ratio = math.sin(ang) / math.cos(math.radians(lat))
    if ratio >= 1.0:
        return min_lat, max_lat, None
    dlng = math.degrees(math.asin(ratio)) + _PAD_DEG
    if dlng >= 180.0:
        return min_lat, max_lat, None

    lo, hi = lng - dlng, lng + dlng
    if lo < -180.0:
        return min_lat, max_lat, [(lo + 360.0, 180.0), (-180.0, hi)]
    if hi > 180.0:
        return min_lat, max_lat, [(lo, 180.0), (-180.0, hi - 360.0)]
    return min_lat, max_lat, [(lo, hi)]
