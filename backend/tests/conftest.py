"""
Pytest fixtures for Vendofy backend tests.

Provides the test app on in-memory SQLite, per-test table cleanup, a
complete account hierarchy (super-admin -> admin -> distributor -> customer,
plus a second, unrelated branch) and helpers to mint bearer headers.
"""

import pytest

from vendofy import create_app
from vendofy.config import TestingConfig
from vendofy.extensions import db
from vendofy.models import Product, User
from vendofy.models.catalog import PRODUCT_STATUS_APPROVED
from vendofy.models.users import ROLE_SUPER_ADMIN
from vendofy.services import session_service
from vendofy.services.auth_service import hash_password
from vendofy.services.mail_service import outbox
from vendofy.services.session_service import AuthContext
from vendofy.time_utils import utcnow

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash(app):
    """Hash the shared test password once (bcrypt cost 12)."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table and the mail outbox before each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    outbox().clear()

    yield db.session

    db.session.rollback()


@pytest.fixture
def make_user(db_session, password_hash):
    """Factory: make_user(role, parent=None, **fields) -> persisted, verified, active User."""
    counter = {"n": 0}

    def _make(role, parent=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "name": f"{role.title()} {n}",
            "email": f"{role}{n}@vendofy.test",
            "password_hash": password_hash,
            "role": role,
            "is_active": True,
            "email_verified": True,
            "uid": f"{role[:3].upper()}{n:04d}",
            "parent_id": parent.id if parent else None,
            "created_by_id": parent.id if parent else None,
        }
        values.update(fields)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user("super-admin", name="Root", email=TestingConfig.SUPER_ADMIN_EMAIL, uid="SUPROOT")


@pytest.fixture
def admin(make_user, super_admin):
    return make_user("admin", created_by_id=super_admin.id)


@pytest.fixture
def distributor(make_user, admin):
    return make_user("distributor", parent=admin)


@pytest.fixture
def customer(make_user, distributor):
    return make_user("customer", parent=distributor)


@pytest.fixture
def other_branch(make_user, super_admin):
    """A second admin -> distributor -> customer chain that shares nothing with the first."""
    other_admin = make_user("admin", name="Other Admin", created_by_id=super_admin.id)
    other_distributor = make_user("distributor", parent=other_admin, name="Other Distributor")
    other_customer = make_user("customer", parent=other_distributor, name="Other Customer")
    return {"admin": other_admin, "distributor": other_distributor, "customer": other_customer}


@pytest.fixture
def make_product(db_session, super_admin):
    """Factory: make_product(price_cents=1000, **fields) -> approved, active Product."""
    def _make(price_cents=1000, **fields):
        values = {
            "name": f"Product {price_cents}",
            "price_cents": price_cents,
            "stock": 100,
            "is_active": True,
            "status": PRODUCT_STATUS_APPROVED,
            "created_by_id": super_admin.id,
        }
        values.update(fields)
        product = Product(**values)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def headers_for(app):
    """Factory: headers_for(user) -> Authorization header for a live session of that user."""
    def _headers(user, role=None):
        super_admin = session_service.is_super_admin(user)
        login_role = role or ("admin" if super_admin else user.role)
        token, _ = session_service.issue_token(user, role=login_role, super_admin=super_admin, ttl_seconds=3600)
        return auth_headers(token)

    return _headers


@pytest.fixture
def ctx_for(app):
    """Factory: ctx_for(user) -> AuthContext as require_auth would build it, for service-level tests."""
    def _ctx(user):
        super_admin = session_service.is_super_admin(user)
        role = ROLE_SUPER_ADMIN if super_admin else user.role
        return AuthContext(user=user, role=role, is_super_admin=super_admin, token="", expires_at=utcnow())

    return _ctx


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
