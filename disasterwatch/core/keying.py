from __future__ import annotations

import base64
import hashlib
from datetime import datetime
from typing import Any, Sequence

import orjson

from disasterwatch.core.time import ensure_utc


def _orjson_dumps(obj: Any) -> bytes:
    return orjson.dumps(
        obj,
        option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
    )


def sha256_b64(data: bytes) -> str:
    h = hashlib.sha256(data).digest()
    return base64.urlsafe_b64encode(h).decode("ascii").rstrip("=")


def disaster_key(event_type: str, coordinates: Sequence[float], date: datetime) -> str:
    """
    Natural key of a disaster event: (type, [lng, lat], date).

    Re-ingesting the same feed snapshot yields the same key, which is what
    makes the store upsert idempotent.
    """
    payload = {
        "type": str(event_type),
        "coordinates": [float(coordinates[0]), float(coordinates[1])],
        "date": ensure_utc(date).isoformat(),
    }
    return sha256_b64(_orjson_dumps(payload))
