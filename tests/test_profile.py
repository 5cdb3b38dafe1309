"""Profile pages and profile updates."""
from tests.conftest import register


def test_profile_shows_user_data(user_client):
    r = user_client.get("/profile")
    assert r.status_code == 200
    html = r.get_data(as_text=True)
    assert 'value="Budi"' in html
    assert 'value="budi@example.com"' in html


def test_admin_profile_redirect(admin_client):
    r = admin_client.get("/profile")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/profileAdmin")


def test_guest_has_no_profile(guest_client):
    r = guest_client.get("/profile")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    r = guest_client.post("/profile/update", data={"first_name": "X"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")


def test_update_profile(user_client, store):
    r = user_client.post("/profile/update", data={"first_name": "Budi", "last_name": "S",
                                                  "email": "baru@example.com",
                                                  "phone_number": "0899"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/profile")
    user = store.get_user_by_username("budi")
    assert user["last_name"] == "S"
    assert user["email"] == "baru@example.com"
    assert user["phone_number"] == "0899"


def test_update_profile_keeps_own_email(user_client):
    r = user_client.post("/profile/update", data={"email": "budi@example.com"})
    assert r.status_code == 302


def test_update_profile_rejects_taken_email(client, store):
    store.create_user(username="sari", password=None, email="sari@example.com")
    register(client)
    r = client.post("/profile/update", data={"email": "sari@example.com"})
    assert r.status_code == 400
    assert store.get_user_by_username("budi")["email"] == "budi@example.com"


def test_admin_update_redirects_to_admin_profile(admin_client):
    r = admin_client.post("/profile/update", data={"first_name": "Kepala"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/profileAdmin")
