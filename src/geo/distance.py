"""Distance calculation utilities using Haversine formula."""

import math

import numpy as np

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula to compute the distance between two GPS coordinates.

    Args:
        lat1: Latitude of first point (degrees)
        lon1: Longitude of first point (degrees)
        lat2: Latitude of second point (degrees)
        lon2: Longitude of second point (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a just past 1 near antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_many(
    lat: float, lon: float, lats: np.ndarray, lons: np.ndarray
) -> np.ndarray:
    """
    Distance from one point to many, same formula as haversine().

    Args:
        lat: Latitude of the reference point (degrees)
        lon: Longitude of the reference point (degrees)
        lats: Latitudes of the other points (degrees)
        lons: Longitudes of the other points (degrees)

    Returns:
        Array of distances in kilometers, one per point
    """
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)

    lat_rad = math.radians(lat)
    lats_rad = np.radians(lats)
    delta_lat = np.radians(lats - lat)
    delta_lon = np.radians(lons - lon)

    a = (
        np.sin(delta_lat / 2) ** 2
        + math.cos(lat_rad) * np.cos(lats_rad) * np.sin(delta_lon / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def to_unit_vectors(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Convert coordinates to points on the unit sphere.

    Straight-line (chord) distance between these points grows with the
    great-circle distance, so a Euclidean nearest-neighbour search over them
    ranks points the same way haversine() does.
    """
    lats_rad = np.radians(np.asarray(lats, dtype=float))
    lons_rad = np.radians(np.asarray(lons, dtype=float))
    cos_lat = np.cos(lats_rad)
    return np.column_stack(
        (cos_lat * np.cos(lons_rad), cos_lat * np.sin(lons_rad), np.sin(lats_rad))
    )
