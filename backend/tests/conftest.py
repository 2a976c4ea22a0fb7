"""
Pytest fixtures for erpcore backend tests.

Provides the application with an in-memory database, two tenants with one
user per role, and login helpers for the test client.
"""

import pytest

from erpcore import create_app
from erpcore.extensions import db
from erpcore.models import Customer, Location, Product, Tenant, User
from erpcore.services.auth_service import hash_password


PASSWORD = "Passw0rd!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.remove()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


def _make_tenant(session, name, code):
    tenant = Tenant(name=name, code=code, settings={}, is_active=True)
    session.add(tenant)
    session.commit()
    return tenant


def _make_user(session, tenant, email, role):
    user = User(
        tenant_id=tenant.id,
        name=email.split("@")[0],
        email=email,
        role=role,
        password_hash=hash_password(PASSWORD, rounds=4),
        is_active=True,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Tenant A (first tenant)."""
    return _make_tenant(db_session, "Tenant A - Acme Corp", "ACME")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Tenant B (second tenant)."""
    return _make_tenant(db_session, "Tenant B - Beta Inc", "BETA")


@pytest.fixture(scope='function')
def admin_a(db_session, tenant_a):
    return _make_user(db_session, tenant_a, "admin@acme.test", "ADMIN")


@pytest.fixture(scope='function')
def manager_a(db_session, tenant_a):
    return _make_user(db_session, tenant_a, "manager@acme.test", "MANAGER")


@pytest.fixture(scope='function')
def user_a(db_session, tenant_a):
    return _make_user(db_session, tenant_a, "clerk@acme.test", "USER")


@pytest.fixture(scope='function')
def admin_b(db_session, tenant_b):
    return _make_user(db_session, tenant_b, "admin@beta.test", "ADMIN")


def get_auth_token(client, tenant_code: str, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'tenantCode': tenant_code,
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    return auth_headers(get_auth_token(client, "ACME", admin_a.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_a):
    return auth_headers(get_auth_token(client, "ACME", manager_a.email))


@pytest.fixture(scope='function')
def user_headers(client, user_a):
    return auth_headers(get_auth_token(client, "ACME", user_a.email))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(get_auth_token(client, "BETA", admin_b.email))


@pytest.fixture(scope='function')
def customer_a(db_session, tenant_a):
    customer = Customer(tenant_id=tenant_a.id, code="C-001", name="Customer A")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def location_a(db_session, tenant_a):
    location = Location(tenant_id=tenant_a.id, name="Main Warehouse")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def product_a(db_session, tenant_a):
    product = Product(
        tenant_id=tenant_a.id,
        sku="PROD-A-001",
        name="Product A",
        category="Flower",
        wholesale_price=4,
        retail_price=10,
    )
    db_session.add(product)
    db_session.commit()
    return product
