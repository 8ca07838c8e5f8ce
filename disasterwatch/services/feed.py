# disasterwatch/services/feed.py
"""
GDACS RSS feed fetcher.

fetch() never raises for upstream trouble. It returns a FeedResult that is
either
  - ok:       live events normalised from the feed, or
  - degraded: the static sample dataset plus the reason the feed was unusable
              (transport error, timeout, HTTP status, unparseable XML).

Callers decide what to do with degraded data; the refresh endpoint reports it
and does not persist samples.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

import httpx

from disasterwatch.core.contracts import DisasterEvent
from disasterwatch.core.settings import settings
from disasterwatch.core.time import utc_now
from disasterwatch.services.normalizer import normalize_items
from disasterwatch.services.samples import sample_events

logger = logging.getLogger(__name__)


@dataclass
class FeedResult:
    status: Literal["ok", "degraded"]
    events: List[DisasterEvent] = field(default_factory=list)
    reason: Optional[str] = None
    dropped: int = 0

    @property
    def degraded(self) -> bool:
        return self.status == "degraded"

    @classmethod
    def ok(cls, events: List[DisasterEvent], *, dropped: int = 0) -> "FeedResult":
        return cls(status="ok", events=events, dropped=dropped)

    @classmethod
    def fallback(cls, reason: str, *, now: Optional[datetime] = None) -> "FeedResult":
        return cls(status="degraded", events=sample_events(now), reason=reason)


# ══════════════════════════════════════════════════════════════
# RSS → raw item dicts
# ══════════════════════════════════════════════════════════════

_NAMESPACE_PREFIXES: Dict[str, str] = {
    "http://www.gdacs.org": "gdacs",
    "http://www.georss.org/georss": "georss",
    "http://www.w3.org/2003/01/geo/wgs84_pos#": "geo",
    "http://purl.org/dc/elements/1.1/": "dc",
}


def _split_tag(tag: str) -> Tuple[Optional[str], str]:
    if tag.startswith("{") and "}" in tag:
        uri, name = tag[1:].split("}", 1)
        return _NAMESPACE_PREFIXES.get(uri.rstrip("/")) or _NAMESPACE_PREFIXES.get(uri), name
    return None, tag


def _element_value(el: ET.Element) -> Any:
    if len(el):
        return _element_to_dict(el, group_namespaces=False)
    text = (el.text or "").strip()
    if el.attrib:
        out: Dict[str, Any] = {_split_tag(k)[1]: v for k, v in el.attrib.items()}
        out["text"] = text
        return out
    return text


def _element_to_dict(el: ET.Element, *, group_namespaces: bool = True) -> Dict[str, Any]:
    """
    Child elements → dict. At item level, namespaced children are grouped
    under their prefix ({"gdacs": {...}}). Repeated elements keep the first.
    """
    out: Dict[str, Any] = {}
    for child in el:
        prefix, name = _split_tag(child.tag)
        target = out
        if group_namespaces and prefix:
            block = out.setdefault(prefix, {})
            if not isinstance(block, dict):
                continue
            target = block
        if name not in target:
            target[name] = _element_value(child)
    return out


def parse_rss_items(xml_text: str) -> List[Dict[str, Any]]:
    """Raises ET.ParseError on malformed XML."""
    root = ET.fromstring(xml_text)
    return [_element_to_dict(el) for el in root.iter() if _split_tag(el.tag)[1] == "item"]


# ══════════════════════════════════════════════════════════════
# Fetcher
# ══════════════════════════════════════════════════════════════

class FeedFetcher:
    def __init__(
        self,
        *,
        url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        source: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.gdacs_feed_url
        self.timeout_s = float(timeout_s if timeout_s is not None else settings.feed_timeout_s)
        self.source = source or settings.feed_source_name
        self.transport = transport

    async def fetch(self, *, now: Optional[datetime] = None) -> FeedResult:
        now = now or utc_now()
        transport = self.transport or httpx.AsyncHTTPTransport(retries=1)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, follow_redirects=True, transport=transport) as client:
                r = await client.get(self.url, headers={"User-Agent": "disasterwatch/feed"})
                r.raise_for_status()
                text = r.text
        except httpx.TimeoutException:
            logger.warning("feed_fetch_timeout url=%s timeout_s=%.1f", self.url, self.timeout_s)
            return FeedResult.fallback(f"feed timed out after {self.timeout_s:g}s", now=now)
        except httpx.HTTPStatusError as e:
            logger.warning("feed_fetch_http_error url=%s status=%d", self.url, e.response.status_code)
            return FeedResult.fallback(f"feed returned HTTP {e.response.status_code}", now=now)
        except httpx.HTTPError as e:
            logger.warning("feed_fetch_failed url=%s error=%s", self.url, e)
            return FeedResult.fallback(f"feed unreachable: {e}", now=now)

        try:
            raw_items = parse_rss_items(text)
        except ET.ParseError as e:
            logger.warning("feed_parse_failed url=%s error=%s", self.url, e)
            return FeedResult.fallback(f"feed is not valid XML: {e}", now=now)

        events, dropped = normalize_items(raw_items, now=now, source=self.source)
        logger.info("feed_fetched url=%s items=%d events=%d dropped=%d", self.url, len(raw_items), len(events), dropped)
        return FeedResult.ok(events, dropped=dropped)
