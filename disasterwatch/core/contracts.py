from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from disasterwatch.core.geo import valid_coordinates
from disasterwatch.core.keying import disaster_key
from disasterwatch.core.time import ensure_utc


# ──────────────────────────────────────────────────────────────
# Shared
# ──────────────────────────────────────────────────────────────

# GDACS event codes; "Unknown" for unmapped feed categories
EventType = Literal["EQ", "TC", "FL", "VO", "DR", "WF", "Unknown"]
EVENT_TYPES: tuple[str, ...] = ("EQ", "TC", "FL", "VO", "DR", "WF")

AlertLevel = Literal["Red", "Orange", "Green"]

ResultStatus = Literal["ok", "degraded"]


class GeoPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)  # [lng, lat]

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

    @property
    def is_valid(self) -> bool:
        return valid_coordinates(self.lng, self.lat)


# ──────────────────────────────────────────────────────────────
# Disasters
# ──────────────────────────────────────────────────────────────

class DisasterEvent(BaseModel):
    id: Optional[str] = None
    type: EventType
    location: GeoPoint
    date: datetime
    alertLevel: AlertLevel = "Green"
    severity: float = 0.0
    title: str = Field(min_length=1)
    description: Optional[str] = None
    source: str = "GDACS"
    url: Optional[str] = None

    # Type-specific
    magnitude: Optional[float] = None      # EQ
    windSpeed: Optional[float] = None      # TC, km/h
    affectedArea: Optional[float] = None   # FL, km²
    population: Optional[float] = None     # FL, people affected

    # True when the location is a per-type default, not a geocoded point
    approximateLocation: bool = False
    lastUpdated: Optional[datetime] = None

    @field_validator("severity")
    @classmethod
    def _clamp_severity(cls, v: float) -> float:
        if not math.isfinite(v):
            return 0.0
        return min(max(v, 0.0), 1.0)

    @field_validator("date", "lastUpdated")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    def natural_key(self) -> str:
        return disaster_key(self.type, self.location.coordinates, self.date)


class DisasterCreateRequest(BaseModel):
    type: EventType
    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)
    severity: Optional[float] = Field(default=None, ge=0, le=1)
    alertLevel: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    source: str = "manual"
    url: Optional[str] = None
    magnitude: Optional[float] = None
    windSpeed: Optional[float] = None
    affectedArea: Optional[float] = None
    population: Optional[float] = None

    @model_validator(mode="after")
    def _not_null_island(self) -> "DisasterCreateRequest":
        if self.longitude == 0 and self.latitude == 0:
            raise ValueError("coordinates (0, 0) are not a valid location")
        return self


class DisasterStats(BaseModel):
    type: str
    count: int
    avgSeverity: float
    byAlertLevel: Dict[str, int] = Field(default_factory=dict)


class FeedRefreshResponse(BaseModel):
    message: str
    updated: int
    status: ResultStatus = "ok"
    reason: Optional[str] = None
    dropped: int = 0


class HeatPoint(BaseModel):
    lat: float
    lng: float
    intensity: float
    type: str
    alertLevel: str
    title: str
    approximateLocation: bool = False


class HeatmapResponse(BaseModel):
    status: ResultStatus = "ok"
    reason: Optional[str] = None
    points: List[HeatPoint] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────
# Geocoding + reports
# ──────────────────────────────────────────────────────────────

class GeocodeItem(BaseModel):
    name: str
    lat: float
    lng: float


class GeocodeResponse(BaseModel):
    query: str
    status: ResultStatus = "ok"
    reason: Optional[str] = None
    items: List[GeocodeItem] = Field(default_factory=list)


class ReportItem(BaseModel):
    id: str
    title: str
    url: Optional[str] = None


class ReportsResponse(BaseModel):
    status: ResultStatus = "ok"
    reason: Optional[str] = None
    page: int = 1
    items: List[ReportItem] = Field(default_factory=list)


# ──────────────────────────────────────────────────────────────
# Auth
# ──────────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    id: str
    name: str
    email: str


class AuthMessage(BaseModel):
    message: str
    user: Optional[UserOut] = None
