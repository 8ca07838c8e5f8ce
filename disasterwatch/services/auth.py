from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import sqlite3
import time
import uuid
from typing import Optional

from disasterwatch.core.contracts import UserOut
from disasterwatch.core.time import utc_now_iso

logger = logging.getLogger(__name__)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
  id            TEXT PRIMARY KEY,
  name          TEXT NOT NULL,
  email         TEXT NOT NULL UNIQUE,   -- stored lower-cased
  password_hash TEXT NOT NULL,
  created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
  token_hash TEXT PRIMARY KEY,          -- HMAC(secret, token); raw token never stored
  user_id    TEXT NOT NULL,
  created_at TEXT NOT NULL,
  expires_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);
"""

_PBKDF2_ITERATIONS = 260_000
_INVALID_CREDENTIALS = "Invalid credentials"


def ensure_auth_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(_SCHEMA_SQL)
    conn.commit()


class AuthError(RuntimeError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


# ──────────────────────────────────────────────────────────────
# Password hashing
# ──────────────────────────────────────────────────────────────

def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _unb64(s: str) -> bytes:
    return base64.urlsafe_b64decode(s + "=" * (-len(s) % 4))


def hash_password(password: str, *, iterations: int = _PBKDF2_ITERATIONS) -> str:
    salt = secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"pbkdf2_sha256${iterations}${_b64(salt)}${_b64(dk)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters, salt_s, hash_s = stored.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), _unb64(salt_s), int(iters))
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(dk, _unb64(hash_s))


# ──────────────────────────────────────────────────────────────
# Service
# ──────────────────────────────────────────────────────────────

class AuthService:
    """Users + opaque session tokens. Not coupled to disaster data."""

    def __init__(self, conn: sqlite3.Connection, *, secret: str, ttl_s: int = 3600):
        self.conn = conn
        self.secret = secret.encode("utf-8")
        self.ttl_s = int(ttl_s)

    def _token_hash(self, token: str) -> str:
        return hmac.new(self.secret, token.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def _norm_email(email: str) -> str:
        return str(email).strip().lower()

    def register(self, *, name: str, email: str, password: str) -> UserOut:
        email_n = self._norm_email(email)
        if self.conn.execute("SELECT 1 FROM users WHERE email=?;", (email_n,)).fetchone():
            raise AuthError("email_taken", "User with this email already exists")

        user_id = uuid.uuid4().hex
        try:
            self.conn.execute(
                "INSERT INTO users (id, name, email, password_hash, created_at) VALUES (?, ?, ?, ?, ?);",
                (user_id, name.strip(), email_n, hash_password(password), utc_now_iso()),
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            # Concurrent registration with the same email
            raise AuthError("email_taken", "User with this email already exists") from e

        logger.info("user_registered id=%s", user_id)
        return UserOut(id=user_id, name=name.strip(), email=email_n)

    def login(self, *, email: str, password: str) -> tuple[str, UserOut]:
        """Returns (session_token, user). Same error for unknown email and bad password."""
        row = self.conn.execute(
            "SELECT id, name, email, password_hash FROM users WHERE email=?;",
            (self._norm_email(email),),
        ).fetchone()
        if not row or not verify_password(password, row[3]):
            raise AuthError("invalid_credentials", _INVALID_CREDENTIALS)

        token = secrets.token_urlsafe(32)
        self.conn.execute(
            "INSERT INTO sessions (token_hash, user_id, created_at, expires_at) VALUES (?, ?, ?, ?);",
            (self._token_hash(token), row[0], utc_now_iso(), time.time() + self.ttl_s),
        )
        self.conn.commit()
        return token, UserOut(id=row[0], name=row[1], email=row[2])

    def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        self.conn.execute("DELETE FROM sessions WHERE token_hash=?;", (self._token_hash(token),))
        self.conn.commit()

    def user_for_token(self, token: Optional[str]) -> Optional[UserOut]:
        if not token:
            return None
        row = self.conn.execute(
            """
            SELECT u.id, u.name, u.email, s.expires_at
            FROM sessions s JOIN users u ON u.id = s.user_id
            WHERE s.token_hash=?;
            """,
            (self._token_hash(token),),
        ).fetchone()
        if not row:
            return None
        if time.time() > float(row[3]):
            self.logout(token)
            return None
        return UserOut(id=row[0], name=row[1], email=row[2])
