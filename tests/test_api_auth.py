import time

from disasterwatch.services.auth import hash_password, verify_password


def _register(client, email="ada@example.com", password="s3cret-pass", name="Ada"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def test_password_hash_roundtrip():
    stored = hash_password("hunter22")
    assert "hunter22" not in stored
    assert verify_password("hunter22", stored)
    assert not verify_password("hunter23", stored)
    assert not verify_password("hunter22", "garbage")


def test_register_then_login_sets_http_only_cookie(client):
    assert _register(client).status_code == 201

    r = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "s3cret-pass"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "ada@example.com"
    assert "password" not in r.text

    set_cookie = r.headers["set-cookie"].lower()
    assert set_cookie.startswith("token=")
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie
    assert "secure" not in set_cookie  # non-production


def test_duplicate_email_is_rejected_without_new_user(client, conn):
    assert _register(client).status_code == 201
    r = _register(client, email="ADA@example.com", name="Impostor")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "email_taken"
    assert conn.execute("SELECT COUNT(*) FROM users;").fetchone()[0] == 1


def test_login_errors_do_not_reveal_which_credential(client):
    _register(client)
    wrong_pw = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope"})
    no_user = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "nope"})
    assert wrong_pw.status_code == no_user.status_code == 400
    assert wrong_pw.json() == no_user.json()


def test_password_is_never_stored_in_plain_text(client, conn):
    _register(client, password="plain-text-pw")
    stored = conn.execute("SELECT password_hash FROM users;").fetchone()[0]
    assert "plain-text-pw" not in stored


def test_protected_route_requires_session(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401

    client.cookies.set("token", "forged")
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "invalid_token"


def test_me_and_logout(client):
    _register(client)
    client.post("/api/auth/login", json={"email": "ada@example.com", "password": "s3cret-pass"})
    token = client.cookies.get("token")

    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Ada"

    r = client.post("/api/auth/logout")
    assert r.status_code == 200

    # The old token no longer works even if replayed
    client.cookies.set("token", token)
    assert client.get("/api/auth/me").status_code == 401


def test_expired_session_is_rejected(auth_service):
    auth_service.register(name="Ada", email="ada@example.com", password="s3cret-pass")
    token, _ = auth_service.login(email="ada@example.com", password="s3cret-pass")
    assert auth_service.user_for_token(token) is not None

    auth_service.conn.execute("UPDATE sessions SET expires_at=?;", (time.time() - 1,))
    assert auth_service.user_for_token(token) is None
