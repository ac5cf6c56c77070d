"""Retrieve the taxi feed page and turn it into record snapshots."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import requests

from ..config import FEED_URL, FETCH_TIMEOUT_SECONDS
from ..errors import FeedHTTPError, FeedNetworkError, FeedTimeout, FetchFailure
from .parser import TaxiRecord, parse_feed

logger = logging.getLogger(__name__)


class FeedFetcher(Protocol):
    """Source of the raw feed page."""

    def fetch_feed_text(self) -> str:
        """
        Return the feed page as text.

        Raises a FetchFailure subclass when the page cannot be retrieved.
        """
        ...


class HttpFeedFetcher:
    """Fetch the feed page over HTTP with a single, timeout-bound GET."""

    def __init__(
        self,
        url: str = FEED_URL,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_feed_text(self) -> str:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
        except requests.Timeout as e:
            raise FeedTimeout(self.url, f"no response after {self.timeout}s") from e
        except requests.RequestException as e:
            raise FeedNetworkError(self.url, str(e)) from e

        if not response.ok:
            raise FeedHTTPError(self.url, response.status_code)
        return response.text

    def close(self) -> None:
        self.session.close()


@dataclass(frozen=True)
class FeedSnapshot:
    """Records parsed from one successful fetch."""

    records: tuple[TaxiRecord, ...] = ()
    fetched_at: datetime | None = None

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of a refresh: the snapshot to display and the error, if any."""

    snapshot: FeedSnapshot
    error: FetchFailure | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None


def refresh_feed(
    fetcher: FeedFetcher, previous: FeedSnapshot | None = None
) -> RefreshResult:
    """
    Fetch and parse the feed once.

    On failure the previous snapshot is returned unchanged together with the
    error, so callers never lose their last known-good records.
    """
    if previous is None:
        previous = FeedSnapshot()
    try:
        raw_html = fetcher.fetch_feed_text()
    except FetchFailure as e:
        logger.warning("Feed refresh failed, keeping %d records: %s", len(previous), e)
        return RefreshResult(snapshot=previous, error=e)

    records = tuple(parse_feed(raw_html))
    logger.info("Feed refreshed: %d taxis", len(records))
    return RefreshResult(
        snapshot=FeedSnapshot(records=records, fetched_at=datetime.now(timezone.utc))
    )
