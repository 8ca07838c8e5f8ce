# disasterwatch/main.py
from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

# Load <repo>/.env (main.py is <repo>/disasterwatch/main.py)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

from disasterwatch.core.settings import settings
from disasterwatch.core.errors import install_error_handlers
from disasterwatch.core.storage import connect_sqlite, ensure_schema
from disasterwatch.api import api_router

from disasterwatch.services.auth import AuthService
from disasterwatch.services.disaster_store import DisasterStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Disaster Watch Backend", version="1.0.0")

# ── Compression (must be added before CORS) ──
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origin.split(",") if o.strip()],
    allow_credentials=True,  # session cookie
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# ──────────────────────────────────────────────────────────────
# DB connection
# ──────────────────────────────────────────────────────────────

_conn = connect_sqlite(settings.database_path)
ensure_schema(_conn)

_store = DisasterStore(_conn)
_auth = AuthService(_conn, secret=settings.session_secret, ttl_s=settings.session_ttl_s)

if settings.is_production and settings.session_secret == "change-me":
    logger.warning("[app] SESSION_SECRET is the default value in production")

# ──────────────────────────────────────────────────────────────
# Dependency providers
# ──────────────────────────────────────────────────────────────

def provide_conn():
    return _conn


def provide_store() -> DisasterStore:
    return _store


def provide_auth_service() -> AuthService:
    return _auth


# ──────────────────────────────────────────────────────────────
# Dependency overrides
# ──────────────────────────────────────────────────────────────

from disasterwatch.api import auth as auth_api
from disasterwatch.api import disasters as disasters_api
from disasterwatch.api import health as health_api

app.dependency_overrides[health_api.get_conn] = provide_conn
app.dependency_overrides[disasters_api.get_store] = provide_store
app.dependency_overrides[auth_api.get_auth_service] = provide_auth_service

# Routes
app.include_router(api_router)

# ──────────────────────────────────────────────────────────────
# Shutdown
# ──────────────────────────────────────────────────────────────

@app.on_event("shutdown")
def shutdown():
    logger.info("[app] Shutting down, closing store connection")
    try:
        _conn.close()
    except Exception as e:
        logger.warning(f"[app] Error closing store: {e}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
