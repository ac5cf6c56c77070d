"""Exception hierarchy for the taxi finder."""


class TaxiFinderError(Exception):
    """Base exception for all taxi finder errors."""


class FetchFailure(TaxiFinderError):
    """The feed page could not be retrieved."""

    def __init__(self, url: str, detail: str):
        self.url = url
        self.detail = detail
        super().__init__(f"Could not fetch taxi feed from {url}: {detail}")


class FeedNetworkError(FetchFailure):
    """Connection-level failure (DNS, refused connection, TLS)."""


class FeedTimeout(FetchFailure):
    """The feed server did not answer in time."""


class FeedHTTPError(FetchFailure):
    """The feed server answered with a non-success status."""

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code}")


class LocationError(TaxiFinderError):
    """The current location could not be obtained."""

    message = "Error fetching location"

    def __init__(self, detail: str | None = None):
        self.detail = detail
        super().__init__(detail or self.message)


class LocationPermissionDenied(LocationError):
    """The user refused access to their location."""

    message = "Permission to access location was denied"


class LocationUnavailable(LocationError):
    """No position provider could produce a fix."""

    message = "Error fetching location"


class LocationTimeout(LocationError):
    """The location request did not complete in time."""

    message = "Timed out waiting for location"
