# disasterwatch/services/normalizer.py
"""
Feed item → canonical DisasterEvent.

Raw items are nested dicts built from RSS <item> elements (see feed.py).
Namespaced children are grouped by prefix, so a GDACS item looks like:

    {
      "title": "Red earthquake alert ...",
      "pubDate": "Mon, 01 Jan 2024 00:00:00 GMT",
      "gdacs": {"eventtype": "EQ", "alertlevel": "Red",
                "severity": {"unit": "M", "value": "7.8", "text": "..."}},
      "georss": {"point": "35.682 139.767"},
      "geo": {"Point": {"lat": "35.682", "long": "139.767"}},
    }

The flat spelling ("gdacs:alertlevel", "georss:point") is accepted too.

Nothing in here raises past `normalize_item`: an unusable or malformed item
comes back as None and the batch carries on.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from disasterwatch.core.contracts import EVENT_TYPES, DisasterEvent, GeoPoint
from disasterwatch.core.geo import safe_float, valid_coordinates
from disasterwatch.core.time import parse_datetime, utc_now
from disasterwatch.services.severity import compute_severity

logger = logging.getLogger(__name__)

# (lng, lat)
LngLat = Tuple[float, float]


# ══════════════════════════════════════════════════════════════
# Fallback locations
# ══════════════════════════════════════════════════════════════

DEFAULT_LOCATIONS: dict[str, LngLat] = {
    "EQ": (139.767, 35.682),    # Tokyo
    "TC": (120.984, 14.599),    # Manila
    "FL": (100.501, 13.754),    # Bangkok
    "VO": (110.446, -7.541),    # Mt. Merapi
    "DR": (151.209, -33.868),   # Sydney
    "WF": (-119.418, 36.778),   # California
}
GLOBAL_DEFAULT_LOCATION: LngLat = (77.0, 20.0)  # India


def default_location(event_type: str) -> LngLat:
    return DEFAULT_LOCATIONS.get(event_type, GLOBAL_DEFAULT_LOCATION)


# ══════════════════════════════════════════════════════════════
# Lookup helpers
# ══════════════════════════════════════════════════════════════

def _lookup(item: Mapping[str, Any], *path: str) -> Any:
    """
    Walk a nested path; if that misses, retry with the first two segments
    joined as a flat "prefix:name" key.
    """
    cur: Any = item
    for p in path:
        if isinstance(cur, Mapping) and p in cur:
            cur = cur[p]
        else:
            cur = None
            break
    if cur is not None or len(path) < 2:
        return cur

    cur = item.get(f"{path[0]}:{path[1]}")
    for p in path[2:]:
        if isinstance(cur, Mapping) and p in cur:
            cur = cur[p]
        else:
            return None
    return cur


def _first(item: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        v = item.get(k)
        if v is not None and v != "":
            return v
    return None


def _text(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, Mapping):
        v = v.get("text")
        if v is None:
            return None
    t = str(v).strip()
    return t or None


_NUMBER_RE = re.compile(r"[-+]?\d+(?:\.\d+)?")


def _number(v: Any) -> Optional[float]:
    """Plain number, numeric string, or an attribute dict carrying `value`."""
    if v is None:
        return None
    if isinstance(v, Mapping):
        return _number(v.get("value")) if v.get("value") not in (None, "") else _number(v.get("text"))
    f = safe_float(v)
    if f is not None:
        return f
    if isinstance(v, str):
        m = _NUMBER_RE.search(v)
        if m:
            return safe_float(m.group(0))
    return None


# ══════════════════════════════════════════════════════════════
# Alert level
# ══════════════════════════════════════════════════════════════

def normalize_alert_level(value: Any) -> Optional[str]:
    """Case-insensitive substring match to Red/Orange/Green, else None."""
    t = _text(value)
    if not t:
        return None
    low = t.lower()
    if "red" in low:
        return "Red"
    if "orange" in low:
        return "Orange"
    if "green" in low:
        return "Green"
    return None


def alert_level_or_default(value: Any) -> str:
    return normalize_alert_level(value) or "Green"


# "Red alert", "Green earthquake alert", "ORANGE flood alert"
_TITLE_ALERT_RE = re.compile(r"\b(red|orange|green)\b[\w\s-]{0,30}?\balert\b", re.IGNORECASE)


def _extract_alert_level(item: Mapping[str, Any], title: Optional[str]) -> str:
    for candidate in (
        _first(item, "alertlevel", "alertLevel", "alert_level"),
        _lookup(item, "gdacs", "alertlevel"),
    ):
        level = normalize_alert_level(candidate)
        if level:
            return level

    if title:
        m = _TITLE_ALERT_RE.search(title)
        if m:
            return m.group(1).capitalize()

    return "Green"


# ══════════════════════════════════════════════════════════════
# Event type
# ══════════════════════════════════════════════════════════════

def normalize_event_type(value: Any) -> Optional[str]:
    t = _text(value)
    if not t:
        return None
    code = t.upper()
    return code if code in EVENT_TYPES else "Unknown"


def _extract_event_type(item: Mapping[str, Any]) -> str:
    for candidate in (
        _first(item, "eventtype", "eventType", "type"),
        _lookup(item, "gdacs", "eventtype"),
    ):
        code = normalize_event_type(candidate)
        if code:
            return code
    return "Unknown"


# ══════════════════════════════════════════════════════════════
# Coordinates
# ══════════════════════════════════════════════════════════════

def _pair(lng: Any, lat: Any) -> Optional[LngLat]:
    x = _number(lng)
    y = _number(lat)
    if x is None or y is None or not valid_coordinates(x, y):
        return None
    return (x, y)


def _split_numbers(raw: Any, sep: Optional[str]) -> Optional[Tuple[str, str]]:
    t = _text(raw)
    if not t:
        return None
    bits = [b for b in t.split(sep) if b.strip()]
    if len(bits) != 2:
        return None
    return bits[0].strip(), bits[1].strip()


_DESC_LAT_RE = re.compile(r"\blat(?:itude)?\s*=\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE)
_DESC_LON_RE = re.compile(r"\b(?:lon|lng|long|longitude)\s*=\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE)


def _from_source_block(item: Mapping[str, Any]) -> Optional[LngLat]:
    hit = _pair(_lookup(item, "gdacs", "longitude"), _lookup(item, "gdacs", "latitude"))
    if hit:
        return hit
    return _pair(item.get("longitude"), item.get("latitude"))


def _from_point_string(item: Mapping[str, Any]) -> Optional[LngLat]:
    raw = _lookup(item, "georss", "point") or item.get("point")
    bits = _split_numbers(raw, None)
    if not bits:
        return None
    lat, lng = bits
    return _pair(lng, lat)


def _from_coordinates_string(item: Mapping[str, Any]) -> Optional[LngLat]:
    raw = item.get("coordinates")
    if not isinstance(raw, str):
        return None
    bits = _split_numbers(raw, ",")
    if not bits:
        return None
    lng, lat = bits
    return _pair(lng, lat)


def _from_nested_pair(item: Mapping[str, Any]) -> Optional[LngLat]:
    for candidate in (_lookup(item, "geo", "Point"), _lookup(item, "geo")):
        if isinstance(candidate, Mapping):
            hit = _pair(_first(candidate, "long", "lon", "lng"), candidate.get("lat"))
            if hit:
                return hit
    return None


def _from_description(description: Optional[str]) -> Optional[LngLat]:
    if not description:
        return None
    lat_m = _DESC_LAT_RE.search(description)
    lon_m = _DESC_LON_RE.search(description)
    if not lat_m or not lon_m:
        return None
    return _pair(lon_m.group(1), lat_m.group(1))


_COORDINATE_STRATEGIES = (
    _from_source_block,
    _from_point_string,
    _from_coordinates_string,
    _from_nested_pair,
)


def extract_location(
    item: Mapping[str, Any],
    event_type: str,
    description: Optional[str] = None,
) -> Tuple[LngLat, bool]:
    """
    Returns ((lng, lat), approximate). `approximate` is True only when the
    per-type default was used.
    """
    for strategy in _COORDINATE_STRATEGIES:
        hit = strategy(item)
        if hit:
            return hit, False

    hit = _from_description(description)
    if hit:
        return hit, False

    return default_location(event_type), True


# ══════════════════════════════════════════════════════════════
# Type-specific fields + date
# ══════════════════════════════════════════════════════════════

def _extract_measures(item: Mapping[str, Any], event_type: str) -> dict[str, Optional[float]]:
    gdacs_severity = _number(_lookup(item, "gdacs", "severity"))

    magnitude = _number(_first(item, "magnitude"))
    if magnitude is None and event_type == "EQ":
        magnitude = gdacs_severity

    wind = _number(_first(item, "windSpeed", "wind_speed", "windspeed"))
    if wind is None and event_type == "TC":
        wind = gdacs_severity

    area = _number(_first(item, "affectedArea", "affected_area", "affectedarea"))

    population = _number(_first(item, "population"))
    if population is None:
        population = _number(_lookup(item, "gdacs", "population"))

    indicator = gdacs_severity if event_type == "FL" else None

    return {
        "magnitude": magnitude if event_type == "EQ" else None,
        "windSpeed": wind if event_type == "TC" else None,
        "affectedArea": area if event_type == "FL" else None,
        "population": population if event_type == "FL" else None,
        "severityIndicator": indicator,
    }


def _extract_date(item: Mapping[str, Any], now: datetime) -> datetime:
    for candidate in (
        _first(item, "pubDate", "pubdate"),
        _lookup(item, "gdacs", "fromdate"),
        _first(item, "date"),
    ):
        dt = parse_datetime(_text(candidate))
        if dt is not None:
            return dt
    return now


# ══════════════════════════════════════════════════════════════
# Entry points
# ══════════════════════════════════════════════════════════════

def _normalize(raw: Mapping[str, Any], *, now: datetime, source: str) -> Optional[DisasterEvent]:
    title = _text(raw.get("title"))
    description = _text(raw.get("description"))
    if not title and not description:
        return None

    event_type = _extract_event_type(raw)
    alert_level = _extract_alert_level(raw, title)
    (lng, lat), approximate = extract_location(raw, event_type, description)
    measures = _extract_measures(raw, event_type)

    return DisasterEvent(
        type=event_type,  # type: ignore
        location=GeoPoint(coordinates=[lng, lat]),
        date=_extract_date(raw, now),
        alertLevel=alert_level,  # type: ignore
        severity=compute_severity(event_type, alert_level, measures),
        title=title or f"{event_type} event",
        description=description,
        source=source,
        url=_text(raw.get("link")),
        magnitude=measures["magnitude"],
        windSpeed=measures["windSpeed"],
        affectedArea=measures["affectedArea"],
        population=measures["population"],
        approximateLocation=approximate,
    )


def normalize_item(
    raw: Any,
    *,
    now: Optional[datetime] = None,
    source: str = "GDACS",
) -> Optional[DisasterEvent]:
    """One feed item → DisasterEvent, or None when the item is unusable."""
    if not isinstance(raw, Mapping):
        logger.warning("normalize_item_dropped reason=not_a_mapping kind=%s", type(raw).__name__)
        return None
    try:
        event = _normalize(raw, now=now or utc_now(), source=source)
    except Exception as e:
        logger.warning("normalize_item_dropped reason=%s title=%r", e, raw.get("title"))
        return None
    if event is None:
        logger.debug("normalize_item_dropped reason=no_title_or_description")
    return event


def normalize_items(
    items: Iterable[Any],
    *,
    now: Optional[datetime] = None,
    source: str = "GDACS",
) -> Tuple[List[DisasterEvent], int]:
    """Normalise a batch; returns (events, dropped_count)."""
    now = now or utc_now()
    events: List[DisasterEvent] = []
    dropped = 0
    for raw in items:
        ev = normalize_item(raw, now=now, source=source)
        if ev is None:
            dropped += 1
        else:
            events.append(ev)
    if dropped:
        logger.warning("normalize_items dropped=%d kept=%d", dropped, len(events))
    return events, dropped
