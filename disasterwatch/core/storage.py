from __future__ import annotations

import sqlite3
from pathlib import Path

from disasterwatch.services.auth import ensure_auth_schema
from disasterwatch.services.disaster_store import DisasterStore


# ──────────────────────────────────────────────────────────────
# Connections
# ──────────────────────────────────────────────────────────────

def connect_sqlite(path: str) -> sqlite3.Connection:
    """
    Open a RW SQLite connection with sane pragmas.

    IMPORTANT:
    - SQLite will NOT create parent directories.
    - WAL mode requires the directory to be writable (creates -wal/-shm).
    """
    if path != ":memory:":
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


# ──────────────────────────────────────────────────────────────
# Schema
# ──────────────────────────────────────────────────────────────

def ensure_schema(conn: sqlite3.Connection) -> None:
    DisasterStore(conn).ensure_schema()
    ensure_auth_schema(conn)
    conn.commit()


def ping(conn: sqlite3.Connection) -> bool:
    try:
        conn.execute("SELECT 1;").fetchone()
        return True
    except sqlite3.Error:
        return False
