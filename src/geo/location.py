"""Current-location providers and the coordinate value they produce."""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Protocol

from ..config import LOCATION_TIMEOUT_SECONDS
from ..errors import (
    LocationError,
    LocationPermissionDenied,
    LocationTimeout,
    LocationUnavailable,
)

logger = logging.getLogger(__name__)

# Error codes of the browser Geolocation API (GeolocationPositionError.code)
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

_BROWSER_ERRORS: dict[int, type[LocationError]] = {
    PERMISSION_DENIED: LocationPermissionDenied,
    POSITION_UNAVAILABLE: LocationUnavailable,
    TIMEOUT: LocationTimeout,
}


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 position in degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(f"Non-finite coordinate: {self.latitude}, {self.longitude}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


class LocationProvider(Protocol):
    """Source of the device's current position."""

    def request_current_location(self) -> Coordinate:
        """
        Return the current position.

        Raises LocationPermissionDenied, LocationUnavailable or
        LocationTimeout. Implementations do not retry.
        """
        ...


class StaticLocationProvider:
    """Provider that always answers with the same coordinate."""

    def __init__(self, coordinate: Coordinate):
        self.coordinate = coordinate

    def request_current_location(self) -> Coordinate:
        return self.coordinate


class BrowserLocationProvider:
    """
    Provider backed by one report from the browser Geolocation API.

    The page asks the browser for a position and forwards either the
    coordinates or the error code; this class turns that report into a
    Coordinate or the matching typed failure.
    """

    def __init__(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        error_code: int | None = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.error_code = error_code

    @classmethod
    def from_report(cls, report: dict) -> "BrowserLocationProvider":
        """Build from a dict with ``lat``/``lon`` or ``error`` keys."""
        error = report.get("error")
        return cls(
            latitude=report.get("lat"),
            longitude=report.get("lon"),
            error_code=int(error) if error is not None else None,
        )

    def request_current_location(self) -> Coordinate:
        if self.error_code is not None:
            error_cls = _BROWSER_ERRORS.get(self.error_code, LocationUnavailable)
            raise error_cls()
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable("Location not yet fetched")
        try:
            return Coordinate(float(self.latitude), float(self.longitude))
        except (TypeError, ValueError) as e:
            raise LocationUnavailable(f"Invalid position reported: {e}") from e


def request_location_with_timeout(
    provider: LocationProvider, timeout: float = LOCATION_TIMEOUT_SECONDS
) -> Coordinate:
    """
    Ask a provider for the current location, giving up after *timeout* seconds.

    The request runs on its own worker thread so a provider stuck on a
    permission prompt or a dead GPS cannot hold up the caller. Failures
    raised by the provider propagate unchanged.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(provider.request_current_location)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as e:
        logger.warning("Location request timed out after %ss", timeout)
        raise LocationTimeout(f"No position after {timeout}s") from e
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
