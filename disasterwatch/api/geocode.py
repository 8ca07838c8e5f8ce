from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from disasterwatch.core.contracts import GeocodeResponse
from disasterwatch.core.errors import bad_request
from disasterwatch.services.geocoding import Geocoder

router = APIRouter(prefix="/api/geocode")


def get_geocoder() -> Geocoder:
    return Geocoder()


@router.get("", response_model=GeocodeResponse)
async def geocode(
    q: str = Query(default=""),
    geocoder: Geocoder = Depends(get_geocoder),
) -> GeocodeResponse:
    if not q.strip():
        bad_request("bad_geocode_request", "Please enter a location")
    return await geocoder.search(q)
