from __future__ import annotations

from fastapi import APIRouter, Depends

from disasterwatch.core.storage import ping

router = APIRouter()


def get_conn():
    raise RuntimeError("db conn must be provided by app dependency override")


@router.get("/health")
def health(conn=Depends(get_conn)) -> dict:
    return {"ok": True, "store": "ok" if ping(conn) else "unavailable"}
