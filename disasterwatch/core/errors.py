from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def bad_request(code: str, message: str):
    raise HTTPException(status_code=400, detail={"code": code, "message": message})


def unauthorized(code: str, message: str):
    raise HTTPException(status_code=401, detail={"code": code, "message": message})


def not_found(code: str, message: str):
    raise HTTPException(status_code=404, detail={"code": code, "message": message})


def service_unavailable(code: str, message: str):
    raise HTTPException(status_code=503, detail={"code": code, "message": message})


# ──────────────────────────────────────────────────────────────
# App-level handlers
# ──────────────────────────────────────────────────────────────

def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "cookie", "header")]
    return ".".join(parts) or "request"


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"detail": {"code": "validation_error", "message": "Invalid request", "fields": fields}},
    )


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error path=%s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": {"code": "internal_error", "message": "Internal server error"}},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
