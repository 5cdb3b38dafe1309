"""Google login: redirect, callback handling and account linking."""
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from kosapp import google_oauth
from kosapp.google_oauth import GoogleOAuthError

PROFILE = {
    "sub": "google-123",
    "email": "rina@example.com",
    "email_verified": True,
    "given_name": "Rina",
    "family_name": "Wati",
}


@pytest.fixture
def google_app(app):
    app.config.update(
        GOOGLE_CLIENT_ID="client-id",
        GOOGLE_CLIENT_SECRET="client-secret",
        GOOGLE_CALLBACK_URL="http://localhost/auth/google/callback",
    )
    return app


def start_login(client):
    r = client.get("/auth/google")
    assert r.status_code == 302
    query = parse_qs(urlparse(r.headers["Location"]).query)
    return query["state"][0]


def test_not_configured_redirects_to_login(client):
    r = client.get("/auth/google")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")


def test_redirects_to_google(google_app, client):
    r = client.get("/auth/google")
    location = urlparse(r.headers["Location"])
    assert location.netloc == "accounts.google.com"
    query = parse_qs(location.query)
    assert query["client_id"] == ["client-id"]
    assert query["redirect_uri"] == ["http://localhost/auth/google/callback"]
    assert query["response_type"] == ["code"]


def test_callback_creates_user(google_app, client, store, monkeypatch):
    calls = []

    def fake_fetch(code, client_id, client_secret, redirect_uri):
        calls.append((code, client_id, client_secret, redirect_uri))
        return dict(PROFILE)

    monkeypatch.setattr(google_oauth, "fetch_profile", fake_fetch)
    state = start_login(client)

    r = client.get(f"/auth/google/callback?code=abc&state={state}")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")
    assert calls == [("abc", "client-id", "client-secret", "http://localhost/auth/google/callback")]

    user = store.get_user_by_google_id("google-123")
    assert user["username"] == "rina"
    assert user["password"] is None
    assert user["first_name"] == "Rina"
    assert client.get("/dashboard").status_code == 200


def test_callback_links_existing_email(google_app, client, store, monkeypatch):
    existing = store.create_user(username="rina_w", password=None, email="rina@example.com")
    monkeypatch.setattr(google_oauth, "fetch_profile", lambda *a: dict(PROFILE))
    state = start_login(client)

    client.get(f"/auth/google/callback?code=abc&state={state}")
    linked = store.get_user_by_google_id("google-123")
    assert linked["user_id"] == existing["user_id"]
    assert store.get_user_by_username("rina") is None


def test_callback_avoids_username_clash(google_app, client, store, monkeypatch):
    store.create_user(username="rina", password=None, email="lain@example.com")
    monkeypatch.setattr(google_oauth, "fetch_profile", lambda *a: dict(PROFILE))
    state = start_login(client)

    client.get(f"/auth/google/callback?code=abc&state={state}")
    assert store.get_user_by_google_id("google-123")["username"] == "rina2"


def test_callback_rejects_bad_state(google_app, client, store, monkeypatch):
    monkeypatch.setattr(google_oauth, "fetch_profile", lambda *a: dict(PROFILE))
    start_login(client)

    r = client.get("/auth/google/callback?code=abc&state=forged")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    assert store.get_user_by_google_id("google-123") is None


def test_callback_handles_provider_error(google_app, client):
    start_login(client)
    r = client.get("/auth/google/callback?error=access_denied")
    assert r.headers["Location"].endswith("/login")


def test_callback_handles_exchange_failure(google_app, client, monkeypatch):
    def failing_fetch(*args):
        raise GoogleOAuthError("boom")

    monkeypatch.setattr(google_oauth, "fetch_profile", failing_fetch)
    state = start_login(client)
    r = client.get(f"/auth/google/callback?code=abc&state={state}")
    assert r.headers["Location"].endswith("/login")
    assert client.get("/dashboard").status_code == 302


def test_google_account_cannot_use_password_login(client, store):
    store.create_user(username="rina", password=None, google_id="google-123")
    r = client.post("/login", data={"username": "rina", "password": ""})
    assert r.status_code == 400


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        return self.payload


def test_fetch_profile_exchanges_code(monkeypatch):
    seen = {}

    def fake_post(self, url, data=None, timeout=None):
        seen["token_data"] = data
        return FakeResponse({"access_token": "tok"})

    def fake_get(self, url, headers=None, timeout=None):
        seen["auth"] = headers["Authorization"]
        return FakeResponse(dict(PROFILE))

    monkeypatch.setattr(requests.Session, "post", fake_post)
    monkeypatch.setattr(requests.Session, "get", fake_get)

    profile = google_oauth.fetch_profile("abc", "id", "secret", "http://cb")
    assert profile["sub"] == "google-123"
    assert seen["token_data"]["grant_type"] == "authorization_code"
    assert seen["auth"] == "Bearer tok"


def test_fetch_profile_wraps_http_errors(monkeypatch):
    monkeypatch.setattr(requests.Session, "post",
                        lambda self, url, data=None, timeout=None: FakeResponse({}, status=401))
    with pytest.raises(GoogleOAuthError):
        google_oauth.fetch_profile("abc", "id", "secret", "http://cb")


def test_callback_with_non_ascii_state(google_app, client, store, monkeypatch):
    monkeypatch.setattr(google_oauth, "fetch_profile", lambda *a: dict(PROFILE))
    start_login(client)

    r = client.get("/auth/google/callback?code=abc&state=%C3%A9")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    assert store.get_user_by_google_id("google-123") is None


def test_callback_does_not_link_unverified_email(google_app, client, store, monkeypatch):
    existing = store.create_user(username="rina_w", password=None, email="rina@example.com")
    profile = {k: v for k, v in PROFILE.items() if k != "email_verified"}
    monkeypatch.setattr(google_oauth, "fetch_profile", lambda *a: dict(profile))
    state = start_login(client)

    r = client.get(f"/auth/google/callback?code=abc&state={state}")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    assert store.get_user_by_username("rina_w")["google_id"] is None
    assert store.get_user_by_google_id("google-123") is None
    assert existing["user_id"] == store.get_user_by_email("rina@example.com")["user_id"]
