import pytest

from auth import security


def register(client, email="ana@example.org", password="secret1"):
    return client.post(
        "/api/auth/register",
        json={"name": "Ana", "email": email, "password": password},
    )


def test_register_returns_token(client):
    resp = register(client)

    assert resp.status_code == 201
    body = resp.json()
    assert body["user"]["email"] == "ana@example.org"
    assert body["user"]["role"] == "standard"
    payload = security.decode_access_token(body["token"])
    assert payload["sub"] == str(body["user"]["id"])


def test_register_duplicate_email_is_409(client):
    assert register(client).status_code == 201
    assert register(client, email="ANA@example.org").status_code == 409


def test_register_short_password_is_400(client):
    resp = register(client, password="123")

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid request.")
    assert "password" in resp.json()["error"]


def test_login(client):
    register(client)

    ok = client.post("/api/auth/login", json={"email": "ana@example.org", "password": "secret1"})
    bad = client.post("/api/auth/login", json={"email": "ana@example.org", "password": "wrong"})

    assert ok.status_code == 200
    assert ok.json()["token"]
    assert bad.status_code == 401


def test_reset_password_only_in_development(client, monkeypatch):
    register(client)
    monkeypatch.setenv("APP_ENV", "production")
    payload = {"email": "ana@example.org", "new_password": "newsecret"}

    assert client.post("/api/auth/reset-password", json=payload).status_code == 403

    monkeypatch.setenv("APP_ENV", "development")
    assert client.post("/api/auth/reset-password", json=payload).status_code == 200
    login = client.post("/api/auth/login", json={"email": "ana@example.org", "password": "newsecret"})
    assert login.status_code == 200


def test_password_hash_roundtrip():
    hashed = security.hash_password("secret1")

    assert security.verify_password("secret1", hashed)
    assert not security.verify_password("other", hashed)
    assert not security.verify_password("secret1", "not-a-hash")


def test_decode_rejects_garbage():
    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token("not.a.jwt")


def test_auth_errors_use_error_body(client):
    resp = client.post("/api/auth/login", json={"email": "nobody@example.org", "password": "x"})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid email or password."}


def test_malformed_login_body_is_400(client):
    resp = client.post("/api/auth/login", content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert "error" in resp.json()
