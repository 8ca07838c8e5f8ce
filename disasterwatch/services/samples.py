"""Static sample dataset served when upstream data is unavailable."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from disasterwatch.core.contracts import DisasterEvent, GeoPoint
from disasterwatch.core.time import utc_now

SAMPLE_SOURCE = "sample"

_SAMPLES = [
    {
        "title": "Earthquake in Japan",
        "description": "6.5 magnitude earthquake",
        "type": "EQ",
        "alertLevel": "Orange",
        "coordinates": [139.767, 35.682],  # Tokyo
        "severity": 0.7,
        "magnitude": 6.5,
    },
    {
        "title": "Flooding in Thailand",
        "description": "Severe flooding affecting Bangkok area",
        "type": "FL",
        "alertLevel": "Red",
        "coordinates": [100.501, 13.754],  # Bangkok
        "severity": 0.9,
    },
    {
        "title": "Tropical Cyclone in Philippines",
        "description": "Category 3 tropical cyclone",
        "type": "TC",
        "alertLevel": "Red",
        "coordinates": [120.984, 14.599],  # Manila
        "severity": 0.85,
    },
    {
        "title": "Drought in Australia",
        "description": "Ongoing drought conditions",
        "type": "DR",
        "alertLevel": "Green",
        "coordinates": [151.209, -33.868],  # Sydney
        "severity": 0.4,
    },
    {
        "title": "Volcanic Activity in Indonesia",
        "description": "Increased activity at Mt. Merapi",
        "type": "VO",
        "alertLevel": "Orange",
        "coordinates": [110.446, -7.541],  # Mt. Merapi
        "severity": 0.65,
    },
]


def sample_events(now: Optional[datetime] = None) -> List[DisasterEvent]:
    now = now or utc_now()
    out: List[DisasterEvent] = []
    for s in _SAMPLES:
        doc = dict(s)
        coords = doc.pop("coordinates")
        out.append(
            DisasterEvent(
                location=GeoPoint(coordinates=coords),
                date=now,
                source=SAMPLE_SOURCE,
                **doc,
            )
        )
    return out
