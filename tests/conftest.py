import os

# Must be set before disasterwatch.core.settings is imported
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ.setdefault("APP_ENV", "test")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from disasterwatch.core.contracts import DisasterEvent, GeoPoint
from disasterwatch.core.storage import connect_sqlite, ensure_schema
from disasterwatch.services.auth import AuthService
from disasterwatch.services.disaster_store import DisasterStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_event(
    type="EQ",
    lng=139.767,
    lat=35.682,
    date=None,
    alert="Red",
    severity=0.5,
    title="Test event",
    **extra,
):
    return DisasterEvent(
        type=type,
        location=GeoPoint(coordinates=[lng, lat]),
        date=date or NOW,
        alertLevel=alert,
        severity=severity,
        title=title,
        **extra,
    )


class FakeFetcher:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def fetch(self, *, now=None):
        self.calls += 1
        return self.result


@pytest.fixture
def conn():
    c = connect_sqlite(":memory:")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def store(conn):
    return DisasterStore(conn)


@pytest.fixture
def auth_service(conn):
    return AuthService(conn, secret="test-secret", ttl_s=3600)


@pytest.fixture
def client(conn, store, auth_service):
    from disasterwatch.api import auth as auth_api
    from disasterwatch.api import disasters as disasters_api
    from disasterwatch.api import health as health_api
    from disasterwatch.main import app

    saved = dict(app.dependency_overrides)
    app.dependency_overrides[health_api.get_conn] = lambda: conn
    app.dependency_overrides[disasters_api.get_store] = lambda: store
    app.dependency_overrides[auth_api.get_auth_service] = lambda: auth_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(saved)


@pytest.fixture
def recent():
    """A timestamp inside every relative-days window used in tests."""
    return datetime.now(timezone.utc) - timedelta(hours=1)
