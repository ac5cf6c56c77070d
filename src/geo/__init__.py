"""Geolocation module for ranking taxis by distance."""

from .distance import haversine, haversine_many
from .location import (
    BrowserLocationProvider,
    Coordinate,
    LocationProvider,
    StaticLocationProvider,
    request_location_with_timeout,
)
from .nearest_taxi import NearestTaxiFinder, RankedTaxi, rank_nearest

__all__ = [
    "haversine",
    "haversine_many",
    "Coordinate",
    "LocationProvider",
    "StaticLocationProvider",
    "BrowserLocationProvider",
    "request_location_with_timeout",
    "RankedTaxi",
    "rank_nearest",
    "NearestTaxiFinder",
]
