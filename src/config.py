"""
Runtime settings for the taxi finder.

Every value can be overridden through an environment variable of the
same name prefixed with ``TAXI_``.
"""

import os


def parse_top_k(value: str) -> int:
    """Read the default ranking size; it must be a non-negative integer."""
    try:
        top_k = int(value)
    except ValueError:
        raise ValueError(f"TAXI_TOP_K must be an integer, got {value!r}") from None
    if top_k < 0:
        raise ValueError(f"TAXI_TOP_K must not be negative, got {top_k}")
    return top_k


# Feed
FEED_URL = os.environ.get("TAXI_FEED_URL", "https://clasespersonales.com/taxis/")
FETCH_TIMEOUT_SECONDS = float(os.environ.get("TAXI_FETCH_TIMEOUT", "10"))

# Location
LOCATION_TIMEOUT_SECONDS = float(os.environ.get("TAXI_LOCATION_TIMEOUT", "12"))

# Ranking
DEFAULT_TOP_K = parse_top_k(os.environ.get("TAXI_TOP_K", "3"))

# Presentation
PAGE_TITLE = "CODIGO - 326"
MAP_LATITUDE_DELTA = 0.0922
MAP_LONGITUDE_DELTA = 0.0421
