"""Feed module for fetching and parsing taxi positions."""

from .fetcher import FeedFetcher, FeedSnapshot, HttpFeedFetcher, RefreshResult, refresh_feed
from .parser import TaxiRecord, extract_record, parse_feed, strip_markup

__all__ = [
    "TaxiRecord",
    "parse_feed",
    "strip_markup",
    "extract_record",
    "FeedFetcher",
    "HttpFeedFetcher",
    "FeedSnapshot",
    "RefreshResult",
    "refresh_feed",
]
