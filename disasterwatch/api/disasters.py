from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from disasterwatch.core.contracts import (
    DisasterCreateRequest,
    DisasterEvent,
    DisasterStats,
    FeedRefreshResponse,
    GeoPoint,
    HeatmapResponse,
    HeatPoint,
    ReportsResponse,
)
from disasterwatch.core.errors import bad_request
from disasterwatch.core.settings import settings
from disasterwatch.core.time import utc_now
from disasterwatch.services.disaster_store import DisasterStore
from disasterwatch.services.feed import FeedFetcher
from disasterwatch.services.intensity import compute_intensity
from disasterwatch.services.normalizer import alert_level_or_default, normalize_alert_level
from disasterwatch.services.reports import ReportsClient
from disasterwatch.services.samples import sample_events
from disasterwatch.services.severity import compute_severity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/disasters")


def get_store() -> DisasterStore:
    raise RuntimeError("DisasterStore must be provided by app dependency override")


def get_feed_fetcher() -> FeedFetcher:
    return FeedFetcher()


def get_reports_client() -> ReportsClient:
    return ReportsClient()


# ──────────────────────────────────────────────────────────────
# Listing
# ──────────────────────────────────────────────────────────────

def _filtered(
    store: DisasterStore,
    event_type: Optional[str],
    alert_level: Optional[str],
    days: Optional[int],
) -> List[DisasterEvent]:
    level = None
    if alert_level:
        level = normalize_alert_level(alert_level)
        if level is None:
            bad_request("bad_alert_level", "alertLevel must be one of Red, Orange, Green")

    code = event_type.strip().upper() if event_type else None
    if code == "UNKNOWN":
        code = "Unknown"

    filtered = bool(code or level or days is not None)
    limit = settings.list_cap_filtered if filtered else settings.list_cap_all
    return store.list(
        event_type=code,
        alert_level=level,
        days=days,
        limit=limit,
    )


@router.get("", response_model=List[DisasterEvent])
def list_disasters(
    type: Optional[str] = None,
    alert_level: Optional[str] = Query(default=None, alias="alertLevel"),
    days: Optional[int] = Query(default=None, ge=0),
    store: DisasterStore = Depends(get_store),
) -> List[DisasterEvent]:
    return _filtered(store, type, alert_level, days)


@router.get("/disasters", response_model=List[DisasterEvent])
def list_disasters_filtered(
    type: Optional[str] = None,
    alert_level: Optional[str] = Query(default=None, alias="alertLevel"),
    days: Optional[int] = Query(default=None, ge=0),
    store: DisasterStore = Depends(get_store),
) -> List[DisasterEvent]:
    return _filtered(store, type, alert_level, days)


@router.get("/area", response_model=List[DisasterEvent])
def disasters_in_area(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    radius: float = Query(ge=0, description="kilometres"),
    store: DisasterStore = Depends(get_store),
) -> List[DisasterEvent]:
    return store.near(lat=lat, lng=lng, radius_km=radius, limit=settings.area_cap)


@router.get("/disaster-stats", response_model=List[DisasterStats])
def disaster_stats(store: DisasterStore = Depends(get_store)) -> List[DisasterStats]:
    return store.stats()


# ──────────────────────────────────────────────────────────────
# Writes
# ──────────────────────────────────────────────────────────────

@router.post("", response_model=DisasterEvent, status_code=201)
def create_disaster(
    req: DisasterCreateRequest,
    store: DisasterStore = Depends(get_store),
) -> DisasterEvent:
    alert_level = alert_level_or_default(req.alertLevel)
    measures = {
        "magnitude": req.magnitude,
        "windSpeed": req.windSpeed,
        "affectedArea": req.affectedArea,
        "population": req.population,
    }
    severity = req.severity if req.severity is not None else compute_severity(req.type, alert_level, measures)

    event = DisasterEvent(
        type=req.type,
        location=GeoPoint(coordinates=[req.longitude, req.latitude]),
        date=req.date or utc_now(),
        alertLevel=alert_level,  # type: ignore
        severity=severity,
        title=(req.title or req.description or f"{req.type} event").strip() or f"{req.type} event",
        description=req.description,
        source=req.source,
        url=req.url,
        **measures,
    )
    stored = store.upsert(event)
    logger.info("disaster_created id=%s type=%s", stored.id, stored.type)
    return stored


@router.post("/update-gdacs", response_model=FeedRefreshResponse)
async def update_gdacs(
    fetcher: FeedFetcher = Depends(get_feed_fetcher),
    store: DisasterStore = Depends(get_store),
) -> FeedRefreshResponse:
    result = await fetcher.fetch()
    if result.degraded:
        # Sample data is for display only; never persist it.
        return FeedRefreshResponse(
            message="Feed unavailable, using sample data",
            updated=0,
            status="degraded",
            reason=result.reason,
        )

    # sqlite write stays off the event loop
    n = await run_in_threadpool(store.upsert_many, result.events)
    logger.info("gdacs_refresh updated=%d dropped=%d", n, result.dropped)
    return FeedRefreshResponse(
        message=f"Updated {n} disasters from GDACS",
        updated=n,
        dropped=result.dropped,
    )


# ──────────────────────────────────────────────────────────────
# Map + feed views
# ──────────────────────────────────────────────────────────────

def _heat_points(events: List[DisasterEvent]) -> List[HeatPoint]:
    now = utc_now()
    return [
        HeatPoint(
            lat=ev.location.lat,
            lng=ev.location.lng,
            intensity=round(compute_intensity(ev, now=now), 4),
            type=ev.type,
            alertLevel=ev.alertLevel,
            title=ev.title,
            approximateLocation=ev.approximateLocation,
        )
        for ev in events
        if ev.location.is_valid
    ]


@router.get("/heatmap", response_model=HeatmapResponse)
def heatmap(store: DisasterStore = Depends(get_store)) -> HeatmapResponse:
    try:
        points = _heat_points(store.list(limit=settings.list_cap_all))
    except sqlite3.Error as e:
        logger.error("heatmap_store_failed error=%s", e)
        return HeatmapResponse(
            status="degraded",
            reason="disaster store unavailable",
            points=_heat_points(sample_events()),
        )

    if not points:
        return HeatmapResponse(
            status="degraded",
            reason="no stored disasters with valid locations",
            points=_heat_points(sample_events()),
        )
    return HeatmapResponse(points=points)


@router.get("/latest", response_model=ReportsResponse)
async def latest_reports(
    limit: int = Query(default=6, ge=1, le=50),
    page: int = Query(default=1, ge=1),
    client: ReportsClient = Depends(get_reports_client),
) -> ReportsResponse:
    return await client.latest(limit, page=page)
