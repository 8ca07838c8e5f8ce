from __future__ import annotations

import sqlite3
from datetime import timedelta
from typing import Iterable, List, Optional

import orjson

from disasterwatch.core.contracts import DisasterEvent, DisasterStats
from disasterwatch.core.geo import haversine_m, radius_window
from disasterwatch.core.time import utc_now


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS disasters (
  id          TEXT PRIMARY KEY,     -- natural key: sha256(type, coordinates, date)
  type        TEXT NOT NULL,
  lng         REAL NOT NULL,
  lat         REAL NOT NULL,
  geo_valid   INTEGER NOT NULL,     -- 0 → excluded from geo queries
  date_ts     REAL NOT NULL,        -- epoch seconds (UTC)
  alert_level TEXT NOT NULL,
  severity    REAL NOT NULL,
  last_updated TEXT NOT NULL,
  doc_json    BLOB NOT NULL         -- orjson dump of DisasterEvent
);

CREATE INDEX IF NOT EXISTS idx_disasters_date ON disasters(date_ts DESC);
CREATE INDEX IF NOT EXISTS idx_disasters_geo ON disasters(lat, lng);
CREATE INDEX IF NOT EXISTS idx_disasters_type ON disasters(type);
"""

_UPSERT_SQL = """
INSERT INTO disasters
  (id, type, lng, lat, geo_valid, date_ts, alert_level, severity, last_updated, doc_json)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
  type=excluded.type,
  lng=excluded.lng,
  lat=excluded.lat,
  geo_valid=excluded.geo_valid,
  date_ts=excluded.date_ts,
  alert_level=excluded.alert_level,
  severity=excluded.severity,
  last_updated=excluded.last_updated,
  doc_json=excluded.doc_json
"""


def _row_values(ev: DisasterEvent) -> tuple:
    lng, lat = ev.location.coordinates
    return (
        ev.id,
        ev.type,
        float(lng),
        float(lat),
        1 if ev.location.is_valid else 0,
        ev.date.timestamp(),
        ev.alertLevel,
        float(ev.severity),
        ev.lastUpdated.isoformat() if ev.lastUpdated else utc_now().isoformat(),
        orjson.dumps(ev.model_dump(mode="json")),
    )


def _load(blob: bytes) -> DisasterEvent:
    return DisasterEvent.model_validate(orjson.loads(blob))


class DisasterStore:
    """
    Disaster events keyed by natural key.

    Every write is an ON CONFLICT(id) upsert on the natural-key id, so repeated or
    overlapping ingestion of the same snapshot converges to one row per key
    (last write wins).
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def ensure_schema(self) -> None:
        self.conn.executescript(_SCHEMA_SQL)
        self.conn.commit()

    # ──────────────────────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────────────────────

    def _stamp(self, ev: DisasterEvent) -> DisasterEvent:
        return ev.model_copy(update={"id": ev.natural_key(), "lastUpdated": utc_now()})

    def upsert(self, ev: DisasterEvent) -> DisasterEvent:
        stored = self._stamp(ev)
        self.conn.execute(_UPSERT_SQL, _row_values(stored))
        self.conn.commit()
        return stored

    def upsert_many(self, events: Iterable[DisasterEvent]) -> int:
        rows = [_row_values(self._stamp(ev)) for ev in events]
        if not rows:
            return 0
        with self.conn:
            self.conn.executemany(_UPSERT_SQL, rows)
        return len(rows)

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    def get(self, disaster_id: str) -> Optional[DisasterEvent]:
        cur = self.conn.execute("SELECT doc_json FROM disasters WHERE id=?;", (disaster_id,))
        row = cur.fetchone()
        return _load(row[0]) if row else None

    def count(self) -> int:
        cur = self.conn.execute("SELECT COUNT(*) FROM disasters;")
        return int(cur.fetchone()[0])

    def list(
        self,
        *,
        event_type: Optional[str] = None,
        alert_level: Optional[str] = None,
        days: Optional[int] = None,
        limit: int = 100,
    ) -> List[DisasterEvent]:
        """Newest first, capped at `limit`."""
        where: list[str] = []
        params: list = []
        if event_type:
            where.append("type = ?")
            params.append(event_type)
        if alert_level:
            where.append("alert_level = ?")
            params.append(alert_level)
        if days is not None:
            where.append("date_ts >= ?")
            params.append((utc_now() - timedelta(days=int(days))).timestamp())

        sql = "SELECT doc_json FROM disasters"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY date_ts DESC LIMIT ?;"
        params.append(int(limit))

        return [_load(r[0]) for r in self.conn.execute(sql, params).fetchall()]

    def near(self, *, lat: float, lng: float, radius_km: float, limit: int = 1000) -> List[DisasterEvent]:
        """
        Events within `radius_km` of (lat, lng), nearest first.

        Prefilter on the indexed columns, then exact haversine. The longitude
        window wraps at the antimeridian and is dropped near the poles. A zero
        radius only matches identical coordinates.
        """
        radius_m = max(0.0, float(radius_km)) * 1000.0
        min_lat, max_lat, lng_ranges = radius_window(lat, lng, radius_m)

        sql = "SELECT lat, lng, doc_json FROM disasters WHERE geo_valid = 1 AND lat BETWEEN ? AND ?"
        params: list = [min_lat, max_lat]
        if lng_ranges is not None:
            sql += " AND (" + " OR ".join("lng BETWEEN ? AND ?" for _ in lng_ranges) + ")"
            for lo, hi in lng_ranges:
                params.extend((lo, hi))
        cur = self.conn.execute(sql + ";", params)

        hits: list[tuple[float, bytes]] = []
        for r_lat, r_lng, blob in cur.fetchall():
            d = haversine_m(lat, lng, float(r_lat), float(r_lng))
            if d <= radius_m:
                hits.append((d, blob))

        hits.sort(key=lambda h: h[0])
        return [_load(blob) for _, blob in hits[: int(limit)]]

    def stats(self) -> List[DisasterStats]:
        by_level: dict[str, dict[str, int]] = {}
        for etype, level, n in self.conn.execute(
            "SELECT type, alert_level, COUNT(*) FROM disasters GROUP BY type, alert_level;"
        ):
            by_level.setdefault(etype, {})[level] = int(n)

        out: List[DisasterStats] = []
        for etype, n, avg in self.conn.execute(
            "SELECT type, COUNT(*), AVG(severity) FROM disasters GROUP BY type ORDER BY type;"
        ):
            out.append(
                DisasterStats(
                    type=etype,
                    count=int(n),
                    avgSeverity=round(float(avg or 0.0), 4),
                    byAlertLevel=by_level.get(etype, {}),
                )
            )
        return out
