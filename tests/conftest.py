# tests/conftest.py

import pytest

from config import TestingConfig
from orderdesk import create_app, services
from orderdesk.extensions import db as _db
from orderdesk.models import ROLE_ADMIN, ROLE_OWNER, ROLE_VENDOR, Project, User


# --- Flask application ---
@pytest.fixture(scope="function")
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def users(app):
    """owner / vendor / other_vendor / admin; password == username. Returns ids."""
    created = {}
    for username, role in (
        ("owner", ROLE_OWNER),
        ("vendor", ROLE_VENDOR),
        ("other_vendor", ROLE_VENDOR),
        ("admin", ROLE_ADMIN),
    ):
        user = User(username=username, display_name=username.replace("_", " ").title(), role=role)
        user.set_password(username)
        _db.session.add(user)
        _db.session.flush()
        created[username] = user.id
    _db.session.commit()
    return created


@pytest.fixture(scope="function")
def project(app, users):
    row = Project(title="Riverside Residences", owner_id=users["owner"])
    _db.session.add(row)
    _db.session.commit()
    return row.id


def get_user(user_id: int) -> User:
    return _db.session.get(User, user_id)


@pytest.fixture(scope="function")
def sent_order(app, users, project):
    """A dispatched order (status sent, 50000) from owner to vendor. Returns the order id."""
    record = services.create_order(
        get_user(users["owner"]),
        vendor_id=users["vendor"],
        project_id=project,
        total_amount="50000",
        items=[{"materialName": "Cement", "quantity": 100, "unit": "bags"}],
        dispatch=True,
    )
    return int(record.id)


@pytest.fixture(scope="function")
def login(client):
    def _login(username: str, password: str | None = None):
        resp = client.post("/api/auth/login", json={"username": username, "password": password or username})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login


@pytest.fixture(scope="function")
def accepted_order(app, users, sent_order):
    """sent_order after vendor offer 45000 + owner accept. Returns the order id."""
    services.negotiate(sent_order, get_user(users["vendor"]), "offer", amount="45000")
    services.negotiate(sent_order, get_user(users["owner"]), "accept")
    return sent_order
