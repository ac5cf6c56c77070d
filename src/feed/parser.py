"""Parse the taxi feed HTML page into taxi records."""

import logging
import math
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Each table row opens with <tr>, optionally with attributes
_ROW_OPEN_RE = re.compile(r"<tr\b[^>]*>", re.IGNORECASE)
# Any tag, including one left unterminated at the end of a fragment
_TAG_RE = re.compile(r"</?[^>]+(?:>|$)")
_NBSP_RE = re.compile(r"&nbsp;|&#160;|\xa0", re.IGNORECASE)

# unit id, license id, latitude, longitude
_RECORD_RE = re.compile(
    r"(?<![\d.-])(\d+)\s+(\d+)\s+(-?\d+\.\d+)\s+(-?\d+\.\d+)"
)


@dataclass(frozen=True)
class TaxiRecord:
    """One taxi position as listed on the feed page."""

    unit_id: str  # "movil", kept as text
    license_id: str  # "carnet", kept as text
    latitude: float
    longitude: float

    def to_dict(self) -> dict:
        return {
            "unit_id": self.unit_id,
            "license_id": self.license_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


def split_rows(raw_html: str) -> list[str]:
    """
    Split a document into row fragments.

    The text before the first row marker is header material and is dropped.
    """
    return _ROW_OPEN_RE.split(raw_html)[1:]


def strip_markup(fragment: str) -> str:
    """
    Reduce an HTML fragment to plain text.

    Tags become separators, non-breaking spaces become ordinary spaces and
    runs of whitespace collapse to one space.

    Examples:
        "<td>1001</td><td>55</td>" -> "1001 55"
        "12&nbsp;<b>34</b>" -> "12 34"
    """
    text = _TAG_RE.sub(" ", fragment)
    text = _NBSP_RE.sub(" ", text)
    return " ".join(text.split())


def extract_record(text: str) -> TaxiRecord | None:
    """
    Pull the first (unit id, license id, latitude, longitude) group out of
    plain text.

    Returns None when the text holds no such group or when the coordinates
    fall outside their valid ranges.
    """
    match = _RECORD_RE.search(text)
    if match is None:
        return None

    unit_id, license_id, lat_text, lon_text = match.groups()
    latitude = float(lat_text)
    longitude = float(lon_text)

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        return None

    return TaxiRecord(
        unit_id=unit_id,
        license_id=license_id,
        latitude=latitude,
        longitude=longitude,
    )


def parse_feed(raw_html: str) -> list[TaxiRecord]:
    """
    Parse every well-formed row of the feed page.

    Rows that do not hold a valid record are skipped; the parse as a whole
    never fails because of one bad row.

    Args:
        raw_html: Full text of the feed page

    Returns:
        Records in the order their rows appear in the document
    """
    records = []
    skipped = 0

    for fragment in split_rows(raw_html):
        text = strip_markup(fragment)
        if not text:
            continue
        record = extract_record(text)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.debug("Skipped %d malformed feed rows", skipped)
    return records
