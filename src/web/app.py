"""
FastAPI web interface for the taxi finder.

Lists the taxis currently on the feed, ranks the nearest ones to the
position reported by the browser, and shows a map for a selected taxi.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from src.config import (
    DEFAULT_TOP_K,
    FEED_URL,
    LOCATION_TIMEOUT_SECONDS,
    MAP_LATITUDE_DELTA,
    MAP_LONGITUDE_DELTA,
    PAGE_TITLE,
)
from src.errors import LocationError
from src.feed import FeedFetcher, FeedSnapshot, HttpFeedFetcher, TaxiRecord, refresh_feed
from src.geo import (
    BrowserLocationProvider,
    Coordinate,
    NearestTaxiFinder,
    RankedTaxi,
    request_location_with_timeout,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Paths
BASE_DIR = Path(__file__).parent
TEMPLATES_DIR = BASE_DIR / "templates"

# Initialize FastAPI
app = FastAPI(
    title="Taxi Finder",
    description="Nearest taxis from the public position feed",
    version="0.1.0",
)

# Templates
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@dataclass(frozen=True)
class FeedState:
    """Current records and the index built over them, swapped as one value."""

    snapshot: FeedSnapshot = field(default_factory=FeedSnapshot)
    finder: NearestTaxiFinder = field(default_factory=NearestTaxiFinder)
    last_error: str | None = None

    def find_taxi(self, unit_id: str, position: int) -> TaxiRecord | None:
        """Record at *position*, provided it still carries *unit_id*."""
        records = self.snapshot.records
        if 0 <= position < len(records) and records[position].unit_id == unit_id:
            return records[position]
        return None


# Global instances; state is only ever replaced, never mutated. Handlers read
# it once per request.
fetcher: FeedFetcher | None = None
state = FeedState()


class TaxiInfo(BaseModel):
    """One taxi from the feed."""

    unit_id: str
    license_id: str
    latitude: float
    longitude: float


class RankedTaxiInfo(TaxiInfo):
    """A taxi with its distance from the origin."""

    position: int  # index in the current feed, used by /map links
    distance_km: float
    display_distance: str


class OriginInfo(BaseModel):
    """Position the ranking was computed from."""

    latitude: float
    longitude: float


class NearestResponse(BaseModel):
    """Response model for the nearest-taxis API."""

    is_valid: bool
    origin: OriginInfo | None = None
    taxis: list[RankedTaxiInfo] = []
    error: str | None = None


class RefreshResponse(BaseModel):
    """Response model for a feed refresh."""

    ok: bool
    count: int
    error: str | None = None


def get_fetcher() -> FeedFetcher:
    """Return the feed fetcher, creating the HTTP one on first use."""
    global fetcher
    if fetcher is None:
        fetcher = HttpFeedFetcher(FEED_URL)
    return fetcher


def reload_feed() -> RefreshResponse:
    """Refetch the feed; the current records stay in place if it fails."""
    global state

    current = state
    result = refresh_feed(get_fetcher(), current.snapshot)
    if result.ok:
        state = FeedState(
            snapshot=result.snapshot,
            finder=NearestTaxiFinder(result.snapshot.records),
        )
    else:
        state = replace(current, last_error=str(result.error))

    return RefreshResponse(
        ok=result.ok, count=len(state.snapshot), error=state.last_error
    )


def resolve_origin(
    lat: float | None, lon: float | None, error: int | None
) -> Coordinate | None:
    """
    Turn the browser's report into an origin.

    Returns None when the browser has not reported anything yet.
    Raises LocationError when it reported a failure.
    """
    if lat is None and lon is None and error is None:
        return None
    provider = BrowserLocationProvider(latitude=lat, longitude=lon, error_code=error)
    return request_location_with_timeout(provider, LOCATION_TIMEOUT_SECONDS)


def to_ranked_info(ranked: RankedTaxi) -> RankedTaxiInfo:
    return RankedTaxiInfo(
        **ranked.record.to_dict(),
        position=ranked.position,
        distance_km=ranked.distance_km,
        display_distance=ranked.display_distance,
    )


@app.on_event("startup")
def startup_event():
    """Load the feed once on startup."""
    response = reload_feed()
    if response.ok:
        logger.info("Loaded %d taxis from %s", response.count, FEED_URL)
    else:
        logger.warning("Starting without taxi data: %s", response.error)


@app.on_event("shutdown")
def shutdown_event():
    """Release the HTTP session held by the feed fetcher."""
    global fetcher
    close = getattr(fetcher, "close", None)
    if close is not None:
        close()
    fetcher = None


@app.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    error: int | None = Query(default=None),
    k: int = Query(default=DEFAULT_TOP_K, ge=0),
):
    """Render the taxi list, and the nearest taxis once a location is known."""
    current = state
    origin = None
    location_error = None
    try:
        origin = resolve_origin(lat, lon, error)
    except LocationError as exc:
        location_error = str(exc)

    nearest = current.finder.find_nearest(origin, k)

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": PAGE_TITLE,
            "taxis": current.snapshot.records,
            "fetch_error": current.last_error,
            "origin": origin,
            "location_error": location_error,
            "nearest": nearest,
            "k": k,
            "location_timeout_ms": int(LOCATION_TIMEOUT_SECONDS * 1000),
        },
    )


@app.get("/map/{unit_id}", response_class=HTMLResponse)
def taxi_map(
    request: Request,
    unit_id: str,
    pos: int = Query(..., ge=0),
    lat: float = Query(...),
    lon: float = Query(...),
):
    """Render a map with the user's position and the selected taxi."""
    taxi = state.find_taxi(unit_id, pos)
    if taxi is None:
        raise HTTPException(status_code=404, detail=f"Unknown taxi: {unit_id}")
    try:
        origin = Coordinate(lat, lon)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return templates.TemplateResponse(
        request,
        "map.html",
        {
            "taxi": taxi,
            "origin": origin,
            "latitude_delta": MAP_LATITUDE_DELTA,
            "longitude_delta": MAP_LONGITUDE_DELTA,
        },
    )


@app.post("/api/refresh", response_model=RefreshResponse)
def api_refresh() -> RefreshResponse:
    """Refetch the feed now."""
    return reload_feed()


@app.get("/api/taxis", response_model=list[TaxiInfo])
def api_taxis() -> list[TaxiInfo]:
    """All taxis from the last successful fetch, in feed order."""
    return [TaxiInfo(**record.to_dict()) for record in state.snapshot.records]


@app.get(
    "/api/nearest",
    response_model=NearestResponse,
    responses={422: {"model": NearestResponse}},
)
def api_nearest(
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    error: int | None = Query(default=None),
    k: int = Query(default=DEFAULT_TOP_K, ge=0),
):
    """
    Nearest taxis to the reported position.

    A reported location failure answers 422 with the explanatory message;
    no location at all gives an empty, invalid result.
    """
    current = state
    try:
        origin = resolve_origin(lat, lon, error)
    except LocationError as exc:
        return JSONResponse(
            status_code=422,
            content=NearestResponse(is_valid=False, error=str(exc)).model_dump(),
        )

    if origin is None:
        return NearestResponse(is_valid=False, error="Location not yet fetched")

    return NearestResponse(
        is_valid=True,
        origin=OriginInfo(**origin.to_dict()),
        taxis=[to_ranked_info(ranked) for ranked in current.finder.find_nearest(origin, k)],
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    current = state
    snapshot = current.snapshot
    return {
        "status": "ok",
        "taxis_loaded": len(snapshot),
        "last_fetch": snapshot.fetched_at.isoformat() if snapshot.fetched_at else None,
        "last_error": current.last_error,
    }
