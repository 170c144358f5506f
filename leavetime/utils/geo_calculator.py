"""
Geographic calculations for airport transit.
Provides utilities to calculate distances between coordinates.
"""
from math import radians, sin, cos, sqrt, atan2, isfinite
from typing import Tuple, Optional

# Mean Earth radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(coord1: Tuple[float, float], coord2: Tuple[float, float]) -> float:
    """
    Calculate the great circle distance between two points on Earth using the Haversine formula.

    Args:
        coord1: Tuple (latitude, longitude) in decimal degrees
        coord2: Tuple (latitude, longitude) in decimal degrees

    Returns:
        Distance in kilometers

    Examples:
        >>> haversine_distance((13.9125, 100.6067), (13.6900, 100.7501))
        29.2  # Don Mueang to Suvarnabhumi, approx
    """
    lat1, lon1 = coord1
    lat2, lon2 = coord2

    lat1_rad = radians(lat1)
    lon1_rad = radians(lon1)
    lat2_rad = radians(lat2)
    lon2_rad = radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = sin(dlat / 2)**2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2)**2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def calculate_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float
) -> float:
    """
    Calculate distance between two geographic coordinates.

    Args:
        lat1: First point latitude in decimal degrees
        lon1: First point longitude in decimal degrees
        lat2: Second point latitude in decimal degrees
        lon2: Second point longitude in decimal degrees

    Returns:
        Distance in kilometers
    """
    return haversine_distance((lat1, lon1), (lat2, lon2))


def calculate_distance_meters(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float
) -> Optional[float]:
    """
    Distance in meters, or None when the coordinates do not produce a finite value.
    """
    try:
        distance = calculate_distance_km(lat1, lon1, lat2, lon2) * 1000.0
    except (ValueError, TypeError):
        return None
    return distance if isfinite(distance) else None
