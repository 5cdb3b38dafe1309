"""Pytest configuration and fixtures, run against both storage backends."""
import pytest

from kosapp import create_app
from kosapp.storage import get_store

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "testpass123"


@pytest.fixture(params=["json", "sql"])
def app(request, tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "STORAGE_BACKEND": request.param,
        "DATA_DIR": str(tmp_path / "data"),
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'kos.db'}",
        "INITIAL_ADMIN_USERNAME": ADMIN_USERNAME,
        "INITIAL_ADMIN_PASSWORD": ADMIN_PASSWORD,
        "GOOGLE_CLIENT_ID": None,
        "GOOGLE_CLIENT_SECRET": None,
        "GOOGLE_CALLBACK_URL": None,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


class StoreProxy:
    """Calls the active store inside a fresh app context per call, so SQL
    reads never come from a stale session."""

    def __init__(self, app):
        self.app = app

    def __getattr__(self, name):
        def call(*args, **kwargs):
            with self.app.app_context():
                return getattr(get_store(), name)(*args, **kwargs)
        return call


@pytest.fixture
def store(app):
    return StoreProxy(app)


def register(client, username="budi", password="rahasia", email="budi@example.com", **extra):
    form = {"username": username, "password": password, "email": email,
            "first_name": "Budi", "last_name": "Santoso", "phone_number": "08123"}
    form.update(extra)
    return client.post("/register", data=form)


def login(client, username, password):
    return client.post("/login", data={"username": username, "password": password})


@pytest.fixture
def admin_client(client):
    r = login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert r.status_code == 302, r.get_data(as_text=True)
    return client


@pytest.fixture
def user_client(client):
    r = register(client)
    assert r.status_code == 302, r.get_data(as_text=True)
    return client


@pytest.fixture
def guest_client(client):
    client.get("/guest")
    return client
