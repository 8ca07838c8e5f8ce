from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Server
    port: int = Field(default=5000, alias="PORT")
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origin: str = Field(default="http://localhost:5173", alias="CORS_ORIGIN")

    # Store (SQLite file, ":memory:" for throwaway runs)
    database_path: str = Field(default="disasterwatch/data/disasters.db", alias="DATABASE_PATH")

    # Sessions
    session_secret: str = Field(default="change-me", alias="SESSION_SECRET")
    session_ttl_s: int = Field(default=60 * 60, alias="SESSION_TTL_S")  # 1h
    session_cookie_name: str = Field(default="token", alias="SESSION_COOKIE_NAME")

    # ──────────────────────────────────────────────────────────────
    # Upstream feeds
    # ──────────────────────────────────────────────────────────────

    gdacs_feed_url: str = Field(default="https://www.gdacs.org/xml/rss.xml", alias="GDACS_FEED_URL")
    feed_source_name: str = Field(default="GDACS", alias="FEED_SOURCE_NAME")
    feed_timeout_s: float = Field(default=10.0, alias="FEED_TIMEOUT_S")

    geocode_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        alias="GEOCODE_URL",
    )
    geocode_timeout_s: float = Field(default=10.0, alias="GEOCODE_TIMEOUT_S")
    geocode_limit: int = Field(default=5, alias="GEOCODE_LIMIT")

    reliefweb_url: str = Field(default="https://api.reliefweb.int/v1/reports", alias="RELIEFWEB_URL")
    reliefweb_appname: str = Field(default="disasterwatch", alias="RELIEFWEB_APPNAME")
    reliefweb_timeout_s: float = Field(default=10.0, alias="RELIEFWEB_TIMEOUT_S")

    # ──────────────────────────────────────────────────────────────
    # Listing caps
    # ──────────────────────────────────────────────────────────────

    list_cap_filtered: int = Field(default=100, alias="LIST_CAP_FILTERED")
    list_cap_all: int = Field(default=1000, alias="LIST_CAP_ALL")
    area_cap: int = Field(default=1000, alias="AREA_CAP")

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"


settings = Settings()
