"""
Integration tests for the session login endpoints.
"""


def test_login_returns_user_and_actor(client, users):
    resp = client.post("/api/auth/login", json={"username": "vendor", "password": "vendor"})

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["username"] == "vendor"
    assert data["role"] == "vendor"
    assert data["actor"] == "vendor"


def test_admin_acts_as_owner(client, login, users):
    login("admin")
    assert client.get("/api/auth/me").get_json()["data"]["actor"] == "owner"


def test_wrong_password(client, users):
    resp = client.post("/api/auth/login", json={"username": "owner", "password": "nope"})

    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "invalid_credentials"


def test_me_requires_login(client, users):
    resp = client.get("/api/auth/me")

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "error": {"code": "unauthorized", "message": "Login required."}}


def test_logout(client, login, users):
    login("owner")
    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401
