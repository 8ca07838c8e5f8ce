import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import FakeFetcher, make_event
from disasterwatch.api import disasters as disasters_api
from disasterwatch.core.settings import settings
from disasterwatch.main import app
from disasterwatch.services.feed import FeedResult


def _use_fetcher(result):
    fetcher = FakeFetcher(result)
    app.dependency_overrides[disasters_api.get_feed_fetcher] = lambda: fetcher
    return fetcher


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "store": "ok"}


def test_list_newest_first(client, store, recent):
    store.upsert(make_event(title="old", date=recent - timedelta(days=3)))
    store.upsert(make_event(title="new", date=recent))
    r = client.get("/api/disasters")
    assert r.status_code == 200
    assert [d["title"] for d in r.json()] == ["new", "old"]


def test_list_filters(client, store, recent):
    store.upsert(make_event(type="EQ", alert="Red", date=recent))
    store.upsert(make_event(type="TC", alert="Orange", date=recent))
    store.upsert(make_event(type="TC", alert="Orange", date=recent - timedelta(days=30)))

    assert len(client.get("/api/disasters", params={"type": "tc"}).json()) == 2
    assert len(client.get("/api/disasters", params={"alertLevel": "ORANGE"}).json()) == 2
    assert len(client.get("/api/disasters", params={"days": 7}).json()) == 2
    r = client.get("/api/disasters/disasters", params={"type": "TC", "days": 7})
    assert len(r.json()) == 1


def test_list_cap_depends_on_filters(client, store, recent, monkeypatch):
    monkeypatch.setattr(settings, "list_cap_filtered", 2)
    monkeypatch.setattr(settings, "list_cap_all", 4)
    for i in range(6):
        store.upsert(make_event(title=f"e{i}", date=recent - timedelta(hours=i)))

    assert [d["title"] for d in client.get("/api/disasters").json()] == ["e0", "e1", "e2", "e3"]
    assert len(client.get("/api/disasters", params={"type": "EQ"}).json()) == 2
    assert len(client.get("/api/disasters/disasters", params={"days": 7}).json()) == 2


def test_list_rejects_bad_alert_level(client):
    r = client.get("/api/disasters", params={"alertLevel": "purple"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "bad_alert_level"


def test_create_disaster_computes_severity(client, store):
    body = {
        "type": "EQ",
        "longitude": 139.767,
        "latitude": 35.682,
        "alertLevel": "red alert",
        "magnitude": 7.8,
        "description": "Strong quake",
    }
    r = client.post("/api/disasters", json=body)
    assert r.status_code == 201
    doc = r.json()
    assert doc["alertLevel"] == "Red"
    assert doc["severity"] == pytest.approx(0.78)
    assert doc["title"] == "Strong quake"
    assert doc["location"]["coordinates"] == [139.767, 35.682]
    assert store.count() == 1


def test_create_disaster_accepts_explicit_severity(client):
    r = client.post(
        "/api/disasters",
        json={"type": "VO", "longitude": 110.4, "latitude": -7.5, "severity": 0.33, "title": "Merapi"},
    )
    assert r.status_code == 201
    assert r.json()["severity"] == pytest.approx(0.33)


def test_create_disaster_validation_errors_are_field_level(client):
    r = client.post("/api/disasters", json={"type": "EQ", "latitude": 95})
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["code"] == "validation_error"
    fields = {f["field"] for f in detail["fields"]}
    assert "longitude" in fields
    assert "latitude" in fields


def test_create_disaster_rejects_null_island(client):
    r = client.post("/api/disasters", json={"type": "EQ", "longitude": 0, "latitude": 0})
    assert r.status_code == 400


def test_area_query(client, store):
    store.upsert(make_event(title="tokyo", lng=139.767, lat=35.682))
    store.upsert(make_event(title="osaka", lng=135.502, lat=34.694))
    r = client.get("/api/disasters/area", params={"lat": 35.68, "lng": 139.76, "radius": 20})
    assert r.status_code == 200
    assert [d["title"] for d in r.json()] == ["tokyo"]


def test_area_query_requires_numbers(client):
    r = client.get("/api/disasters/area", params={"lat": "abc", "lng": 1, "radius": 1})
    assert r.status_code == 400


def test_stats(client, store):
    store.upsert(make_event(type="EQ", severity=0.2))
    store.upsert(make_event(type="EQ", severity=0.4, lng=1.0, lat=1.0))
    r = client.get("/api/disasters/disaster-stats")
    assert r.status_code == 200
    [eq] = r.json()
    assert eq["type"] == "EQ"
    assert eq["count"] == 2
    assert eq["avgSeverity"] == pytest.approx(0.3)


def test_update_gdacs_upserts_and_is_idempotent(client, store):
    events = [make_event(type="EQ"), make_event(type="FL", lng=100.5, lat=13.75)]
    fetcher = _use_fetcher(FeedResult.ok(events, dropped=1))

    r = client.post("/api/disasters/update-gdacs")
    assert r.status_code == 200
    body = r.json()
    assert body["updated"] == 2
    assert body["status"] == "ok"
    assert body["dropped"] == 1

    client.post("/api/disasters/update-gdacs")
    assert fetcher.calls == 2
    assert store.count() == 2


def test_update_gdacs_writes_off_the_event_loop(client, store):
    calls = []
    original = store.upsert_many

    def recording_upsert_many(events):
        try:
            asyncio.get_running_loop()
            calls.append("loop")
        except RuntimeError:
            calls.append("worker")
        return original(events)

    store.upsert_many = recording_upsert_many
    _use_fetcher(FeedResult.ok([make_event()]))

    r = client.post("/api/disasters/update-gdacs")
    assert r.json()["updated"] == 1
    assert calls == ["worker"]


def test_update_gdacs_degraded_does_not_persist_samples(client, store):
    _use_fetcher(FeedResult.fallback("feed returned HTTP 502"))
    r = client.post("/api/disasters/update-gdacs")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "degraded"
    assert body["updated"] == 0
    assert "502" in body["reason"]
    assert store.count() == 0


def test_heatmap_live(client, store, recent):
    store.upsert(make_event(type="WF", severity=0.6, date=recent))
    r = client.get("/api/disasters/heatmap")
    body = r.json()
    assert body["status"] == "ok"
    [point] = body["points"]
    assert point["intensity"] == pytest.approx(0.6)
    assert point["lat"] == pytest.approx(35.682)


def test_heatmap_degrades_to_sample_data_when_empty(client):
    body = client.get("/api/disasters/heatmap").json()
    assert body["status"] == "degraded"
    assert body["reason"]
    assert len(body["points"]) == 5
    assert all(0.25 <= p["intensity"] <= 1.0 for p in body["points"])


def test_unexpected_errors_are_generic_500(client):
    class BrokenStore:
        def stats(self):
            raise RuntimeError("secret internals")

    # the client fixture restores overrides afterwards
    app.dependency_overrides[disasters_api.get_store] = lambda: BrokenStore()
    r = TestClient(app, raise_server_exceptions=False).get("/api/disasters/disaster-stats")
    assert r.status_code == 500
    assert "secret" not in r.text
    assert r.json()["detail"]["code"] == "internal_error"
