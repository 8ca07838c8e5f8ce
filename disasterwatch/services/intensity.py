# disasterwatch/services/intensity.py
"""
Render-time heat intensity for the map's heat layer.

Kept apart from stored severity: it folds in recency and has a visibility
floor, and its constants are tuned for display independently of
`severity.py`.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from disasterwatch.core.contracts import DisasterEvent
from disasterwatch.core.time import parse_datetime, utc_now
from disasterwatch.services.normalizer import normalize_alert_level

ALERT_DISPLAY_BASE: Dict[str, float] = {
    "Red": 1.0,
    "Orange": 0.75,
    "Green": 0.5,
    "Unknown": 0.3,
}

TYPE_VISUAL_WEIGHTS: Dict[str, float] = {
    "EQ": 1.3,
    "TC": 1.2,
    "FL": 1.1,
    "DR": 0.9,
    "VO": 1.2,
    "WF": 1.0,
    "TS": 1.1,
}

MIN_INTENSITY = 0.25
MIN_RECENCY = 0.4
_DAY_S = 86400.0

EventLike = Union[DisasterEvent, Mapping[str, Any]]


def _get(event: EventLike, name: str) -> Any:
    if isinstance(event, Mapping):
        return event.get(name)
    return getattr(event, name, None)


def _base(event: EventLike) -> float:
    sev = _get(event, "severity")
    if isinstance(sev, (int, float)) and not isinstance(sev, bool) and math.isfinite(sev):
        return min(max(float(sev), 0.0), 1.0)
    level = normalize_alert_level(_get(event, "alertLevel")) or "Unknown"
    return ALERT_DISPLAY_BASE[level]


def recency_factor(event_date: Optional[datetime], *, now: Optional[datetime] = None) -> float:
    """1.0 inside the last day, then a log decay floored at 0.4."""
    if event_date is None:
        return 1.0
    now = now or utc_now()
    days = max(0.0, (now - event_date).total_seconds() / _DAY_S)
    if days <= 1.0:
        return 1.0
    return max(MIN_RECENCY, 1.0 - 0.15 * math.log10(days + 1.0))


def compute_intensity(event: EventLike, *, now: Optional[datetime] = None) -> float:
    intensity = _base(event)
    intensity *= TYPE_VISUAL_WEIGHTS.get(str(_get(event, "type") or ""), 1.0)
    intensity *= recency_factor(parse_datetime(_get(event, "date")), now=now)
    return min(max(intensity, MIN_INTENSITY), 1.0)
