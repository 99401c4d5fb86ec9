"""
Geographic utility functions.

Great-circle distance between coordinates plus geohash cells used by the
transporter directory to index locations.
"""
import math
from math import radians, cos, sin, asin, sqrt
from typing import Any, Optional, Set, Tuple

from constants import EARTH_RADIUS_METERS, GEOCELL_PRECISION


def coordinates_of(location: Any) -> Optional[Tuple[float, float]]:
    """
    Extract (latitude, longitude) from a location mapping or object.

    Args:
        location: Dict with latitude/longitude keys, object with those
            attributes, or a (lat, lng) tuple

    Returns:
        Coordinate tuple, or None if the location has no usable coordinates
    """
    if location is None:
        return None

    if isinstance(location, (tuple, list)) and len(location) == 2:
        lat, lng = location
    elif isinstance(location, dict):
        lat, lng = location.get("latitude"), location.get("longitude")
    else:
        lat = getattr(location, "latitude", None)
        lng = getattr(location, "longitude", None)

    if lat is None or lng is None:
        return None

    try:
        return float(lat), float(lng)
    except (TypeError, ValueError):
        return None


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(min(1.0, a)))
    return c * EARTH_RADIUS_METERS


def distance_meters(a: Any, b: Any) -> float:
    """
    Great-circle distance between two locations.

    Args:
        a: First location (see coordinates_of)
        b: Second location

    Returns:
        Distance in meters

    Raises:
        ValueError: If either location lacks coordinates
    """
    first = coordinates_of(a)
    second = coordinates_of(b)
    if first is None or second is None:
        raise ValueError("Both locations need latitude and longitude")
    return calculate_distance(first[0], first[1], second[0], second[1])


def distance_or_none(a: Any, b: Any) -> Optional[float]:
    """Distance in meters, or None when either side has no coordinates."""
    if coordinates_of(a) is None or coordinates_of(b) is None:
        return None
    return distance_meters(a, b)


def is_nearby(a: Any, b: Any, cutoff_meters: float) -> bool:
    """
    Check whether two locations are within the cutoff.

    Unknown coordinates are never nearby.
    """
    distance = distance_or_none(a, b)
    return distance is not None and distance <= cutoff_meters


# Base32 alphabet for geohash
_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"


def encode_geohash(lat: float, lon: float, precision: int = GEOCELL_PRECISION) -> str:
    """
    Encode latitude/longitude to geohash string.

    Args:
        lat: Latitude (-90 to 90)
        lon: Longitude (-180 to 180)
        precision: Number of characters (1-12)

    Returns:
        Geohash string
    """
    lat_range = (-90.0, 90.0)
    lon_range = (-180.0, 180.0)

    geohash = []
    bits = [16, 8, 4, 2, 1]
    bit = 0
    ch = 0
    is_lon = True

    while len(geohash) < precision:
        if is_lon:
            mid = (lon_range[0] + lon_range[1]) / 2
            if lon >= mid:
                ch |= bits[bit]
                lon_range = (mid, lon_range[1])
            else:
                lon_range = (lon_range[0], mid)
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat >= mid:
                ch |= bits[bit]
                lat_range = (mid, lat_range[1])
            else:
                lat_range = (lat_range[0], mid)

        is_lon = not is_lon

        if bit < 4:
            bit += 1
        else:
            geohash.append(_BASE32[ch])
            bit = 0
            ch = 0

    return "".join(geohash)


def geocell_for(location: Any, precision: int = GEOCELL_PRECISION) -> Optional[str]:
    """Geohash cell for a location, or None without coordinates."""
    coords = coordinates_of(location)
    if coords is None:
        return None
    return encode_geohash(coords[0], coords[1], precision)


def get_covering_geohashes(
    lat: float,
    lon: float,
    radius_meters: float,
    precision: int = GEOCELL_PRECISION
) -> Set[str]:
    """
    Get all geohash cells that cover the circular area around a point.

    Samples a grid over the bounding square with a spacing finer than one
    cell, so every cell touching the circle is hit.

    Args:
        lat: Center latitude
        lon: Center longitude
        radius_meters: Search radius in meters
        precision: Geohash precision

    Returns:
        Set of geohash strings covering the area
    """
    lat_offset = radius_meters / 111000.0
    lon_offset = min(180.0, radius_meters / (111000.0 * max(abs(math.cos(math.radians(lat))), 1e-6)))

    lon_bits = (5 * precision + 1) // 2
    lat_bits = (5 * precision) // 2
    cell_width = 360.0 / (2 ** lon_bits)
    cell_height = 180.0 / (2 ** lat_bits)

    steps = max(3, math.ceil(lon_offset / cell_width), math.ceil(lat_offset / cell_height))

    geohashes = set()
    for lat_step in range(-steps, steps + 1):
        for lon_step in range(-steps, steps + 1):
            sample_lat = max(-90.0, min(90.0, lat + (lat_step * lat_offset / steps)))
            sample_lon = lon + (lon_step * lon_offset / steps)
            # Wrap longitude into [-180, 180)
            sample_lon = ((sample_lon + 180.0) % 360.0) - 180.0
            geohashes.add(encode_geohash(sample_lat, sample_lon, precision))

    return geohashes
