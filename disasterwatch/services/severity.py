# disasterwatch/services/severity.py
"""
Ingestion-time severity scoring.

severity = clamp(base(alertLevel) * multiplier(type, fields), 0, 1)

This is the single source of truth for the stored `severity` field. The
render-time heat weight lives in `intensity.py` and uses its own constants.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from disasterwatch.core.geo import safe_float


ALERT_BASE: Dict[str, float] = {
    "Red": 1.0,     # severe impact
    "Orange": 0.7,  # medium impact
    "Green": 0.4,   # low impact
}
UNKNOWN_ALERT_BASE = 0.3

OTHER_TYPE_MULTIPLIER = 0.7

# Normalisation denominators
EQ_MAGNITUDE_SCALE = 10.0
TC_WIND_SCALE_KMH = 200.0
FL_AREA_SCALE_KM2 = 10_000.0
FL_POPULATION_SCALE = 1_000_000.0
FL_INDICATOR_SCALE = 3.0


def _clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return min(max(x, lo), hi)


def _ratio(value: float, scale: float) -> float:
    return _clamp(value / scale)


def _field(fields: Mapping[str, Any], *names: str) -> Optional[float]:
    for n in names:
        v = safe_float(fields.get(n))
        if v is not None:
            return v
    return None


def _type_multiplier(event_type: str, fields: Mapping[str, Any]) -> float:
    if event_type == "EQ":
        magnitude = _field(fields, "magnitude")
        return _ratio(magnitude, EQ_MAGNITUDE_SCALE) if magnitude is not None else 1.0

    if event_type == "TC":
        wind = _field(fields, "windSpeed", "wind_speed")
        return _ratio(wind, TC_WIND_SCALE_KMH) if wind is not None else 1.0

    if event_type == "FL":
        population = _field(fields, "population")
        indicator = _field(fields, "severityIndicator", "severity_indicator")
        if population is not None and indicator is not None:
            return (
                0.4 * _ratio(population, FL_POPULATION_SCALE)
                + 0.6 * _ratio(indicator, FL_INDICATOR_SCALE)
            )
        area = _field(fields, "affectedArea", "affected_area")
        if area is not None:
            return _ratio(area, FL_AREA_SCALE_KM2)
        return 1.0

    return OTHER_TYPE_MULTIPLIER


def compute_severity(
    event_type: str,
    alert_level: Optional[str],
    fields: Optional[Mapping[str, Any]] = None,
) -> float:
    """
    Pure severity score in [0, 1].

    `fields` may carry magnitude (EQ), windSpeed (TC), and population,
    severityIndicator, affectedArea (FL). Missing fields fall back to a
    neutral multiplier of 1.0 for those three types.
    """
    base = ALERT_BASE.get(alert_level or "", UNKNOWN_ALERT_BASE)
    multiplier = _type_multiplier(event_type, fields or {})
    return _clamp(base * multiplier)
