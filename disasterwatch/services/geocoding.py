"""
Nominatim place search for the map view's "find a location" box.

Docs: https://nominatim.org/release-docs/latest/api/Search/

Upstream failure is not an error for the caller: the result comes back
degraded with no items and a reason, and the map stays where it is.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from disasterwatch.core.contracts import GeocodeItem, GeocodeResponse
from disasterwatch.core.geo import safe_float
from disasterwatch.core.settings import settings

logger = logging.getLogger(__name__)


def _result_to_item(row: dict[str, Any]) -> GeocodeItem | None:
    lat = safe_float(row.get("lat"))
    lng = safe_float(row.get("lon"))
    if lat is None or lng is None:
        return None
    name = str(row.get("display_name") or row.get("name") or "").strip()
    return GeocodeItem(name=name, lat=lat, lng=lng)


class Geocoder:
    """Thin async wrapper around Nominatim forward search."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_s: float | None = None,
        limit: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.geocode_url
        self.timeout_s = float(timeout_s if timeout_s is not None else settings.geocode_timeout_s)
        self.limit = int(limit or settings.geocode_limit)
        self.transport = transport

    async def search(self, query: str) -> GeocodeResponse:
        query = (query or "").strip()
        if not query:
            return GeocodeResponse(query="", items=[])

        params = {"format": "json", "q": query, "limit": str(self.limit)}
        logger.info("geocode query=%r limit=%d", query, self.limit)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.get(
                    self.base_url,
                    params=params,
                    headers={"User-Agent": "disasterwatch/geocode"},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            logger.error("geocode_timeout query=%r", query)
            return GeocodeResponse(query=query, status="degraded", reason="geocoding timed out")
        except httpx.HTTPStatusError as exc:
            logger.error("geocode_http_error status=%d", exc.response.status_code)
            return GeocodeResponse(
                query=query,
                status="degraded",
                reason=f"geocoding failed: HTTP {exc.response.status_code}",
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("geocode_failed query=%r error=%s", query, exc)
            return GeocodeResponse(query=query, status="degraded", reason="geocoding unavailable")

        rows = data if isinstance(data, list) else []
        items = [it for it in (_result_to_item(r) for r in rows if isinstance(r, dict)) if it]
        logger.info("geocode results=%d", len(items))
        return GeocodeResponse(query=query, items=items)
