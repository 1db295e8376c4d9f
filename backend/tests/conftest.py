"""
Pytest fixtures for rentalhub backend tests.

Each test gets its own application on a fresh in-memory database. Fixtures
that create rows do so inside a short-lived app context and hand back plain
values, so request tests never share flask.g with fixture setup.
"""

import pytest
from rentalhub import create_app
from rentalhub.extensions import db
from rentalhub.permissions import Role
from rentalhub.services import auth_service


PASSWORD = "Password123"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def app_ctx(app):
    """Active app context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


def make_user(app, username: str, role: str, business_name: str | None = None) -> dict:
    with app.app_context():
        user = auth_service.register(
            username=username,
            email=f"{username}@rental.test",
            password=PASSWORD,
            role=role,
            business_name=business_name,
        )
        return {
            "id": user.id,
            "username": user.username,
            "role": user.role,
            "vendor_id": user.vendor.id if user.vendor is not None else None,
        }


@pytest.fixture(scope='function')
def alice(app):
    """Customer."""
    return make_user(app, "alice", Role.CUSTOMER)


@pytest.fixture(scope='function')
def bob(app):
    """Second customer."""
    return make_user(app, "bob", Role.CUSTOMER)


@pytest.fixture(scope='function')
def vendor_one(app):
    return make_user(app, "vendor_one", Role.VENDOR, business_name="Camera Rentals")


@pytest.fixture(scope='function')
def vendor_two(app):
    return make_user(app, "vendor_two", Role.VENDOR, business_name="Tent Rentals")


@pytest.fixture(scope='function')
def admin(app):
    return make_user(app, "admin", Role.ADMINISTRATOR)


def login(client, username: str, password: str = PASSWORD, **kwargs):
    """Log in through the API; the client keeps the session cookie."""
    return client.post('/api/auth/login', json={
        'username': username,
        'password': password,
    }, **kwargs)


@pytest.fixture(scope='function')
def customer_client(app, alice):
    client = app.test_client()
    assert login(client, "alice").status_code == 200
    return client


@pytest.fixture(scope='function')
def vendor_client(app, vendor_one):
    client = app.test_client()
    assert login(client, "vendor_one").status_code == 200
    return client


@pytest.fixture(scope='function')
def admin_client(app, admin):
    client = app.test_client()
    assert login(client, "admin").status_code == 200
    return client


class RecordingAudit:
    """Audit sink that keeps calls in memory."""

    def __init__(self):
        self.denials = []
        self.locks = []
        self.releases = []

    def log_permission_denied(self, resource, action, user_id=None):
        self.denials.append((resource, action, user_id))

    def log_inventory_lock(self, lock, actor_id=None):
        self.locks.append((lock.id, actor_id))

    def log_inventory_release(self, lock, actor_id=None):
        self.releases.append((lock.id, actor_id))


@pytest.fixture(scope='function')
def recording_audit():
    return RecordingAudit()
