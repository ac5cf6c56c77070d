"""Shared test fixtures: a small feed page and records around Mexico City."""

import pytest

from src.feed.parser import TaxiRecord

FEED_HTML = """\
<html><body>
<table>
<tr><th>MOVIL</th><th>CARNET</th><th>LATITUD</th><th>LONGITUD</th></tr>
<tr><td>1001</td><td>55</td><td>19.4326</td><td>-99.1332</td></tr>
<tr><td>0042</td><td>007</td><td>19.3000</td><td>-99.0500</td></tr>
<tr><td>sin datos</td><td></td><td></td><td></td></tr>
<tr><td>2002</td><td>81</td><td>19.0100</td><td>-99.0100</td></tr>
</table>
</body></html>
"""


class FakeFetcher:
    """Feed fetcher returning canned text or raising a canned failure."""

    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls = 0

    def fetch_feed_text(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def feed_html() -> str:
    return FEED_HTML


@pytest.fixture
def records() -> list[TaxiRecord]:
    return [
        TaxiRecord("1001", "55", 19.4326, -99.1332),
        TaxiRecord("0042", "007", 19.3, -99.05),
        TaxiRecord("2002", "81", 19.01, -99.01),
    ]


@pytest.fixture
def fake_fetcher():
    """Factory for canned feed fetchers."""
    return FakeFetcher
