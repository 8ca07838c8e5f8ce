"""Latest humanitarian report headlines from ReliefWeb."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from disasterwatch.core.contracts import ReportItem, ReportsResponse
from disasterwatch.core.settings import settings

logger = logging.getLogger(__name__)


def _to_item(row: dict[str, Any]) -> ReportItem | None:
    fields = row.get("fields") or {}
    title = str(fields.get("title") or "").strip()
    rid = row.get("id")
    if not title or rid is None:
        return None
    url = row.get("href") or fields.get("url")
    return ReportItem(id=str(rid), title=title, url=str(url) if url else None)


class ReportsClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        appname: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.reliefweb_url
        self.appname = appname or settings.reliefweb_appname
        self.timeout_s = float(timeout_s if timeout_s is not None else settings.reliefweb_timeout_s)
        self.transport = transport

    async def latest(self, limit: int = 6, page: int = 1) -> ReportsResponse:
        """Newest reports first; `page` is 1-based and pages are `limit` long."""
        limit = max(1, min(int(limit), 50))
        page = max(1, int(page))
        params = {
            "appname": self.appname,
            "limit": str(limit),
            "offset": str((page - 1) * limit),
            "sort[]": "date:desc",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                resp = await client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("reliefweb_failed error=%s", exc)
            return ReportsResponse(page=page, status="degraded", reason="report service unavailable")

        rows = data.get("data") if isinstance(data, dict) else None
        items: list[ReportItem] = []
        seen: set[str] = set()
        for r in rows or []:
            it = _to_item(r) if isinstance(r, dict) else None
            if it is None or it.id in seen:
                continue
            seen.add(it.id)
            items.append(it)
        return ReportsResponse(page=page, items=items)
