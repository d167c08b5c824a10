"""
Pytest fixtures for PDV backend tests.

Provides test database setup, two tenants with their own data, an employee,
an administrator, and ready-made Authorization headers for each.
"""

from datetime import timedelta

import pytest

from pdv import create_app
from pdv.extensions import db
from pdv.models import Client, Employee, Owner, Product
from pdv.services import session_service
from pdv.services.auth_service import hash_password
from pdv.time_utils import utcnow


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """One bcrypt hash shared by every fixture account (cost 12 is slow)."""
    return hash_password(PASSWORD)


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

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_owner(session, password_hash, *, name, email, payment_status="trial", trial_days=14, is_admin=False):
    owner = Owner(
        name=name,
        email=email,
        password_hash=password_hash,
        payment_status=payment_status,
        trial_ends_at=utcnow() + timedelta(days=trial_days) if payment_status == "trial" else None,
        is_admin=is_admin,
    )
    session.add(owner)
    session.commit()
    return owner


def make_product(session, tenant_id, *, name="Widget", quantity=10, unit_cost_cents=3000,
                 sale_price_cents=5000, **extra):
    product = Product(
        tenant_id=tenant_id,
        name=name,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        sale_price_cents=sale_price_cents,
        **extra,
    )
    session.add(product)
    session.commit()
    return product


def make_client(session, tenant_id, *, name="Maria Silva", **extra):
    record = Client(tenant_id=tenant_id, name=name, **extra)
    session.add(record)
    session.commit()
    return record


@pytest.fixture(scope='function')
def owner_a(db_session, password_hash):
    """Owner A (first tenant), on trial."""
    return make_owner(db_session, password_hash, name="Loja A", email="owner_a@loja-a.com")


@pytest.fixture(scope='function')
def owner_b(db_session, password_hash):
    """Owner B (second tenant), on trial."""
    return make_owner(db_session, password_hash, name="Loja B", email="owner_b@loja-b.com")


@pytest.fixture(scope='function')
def admin(db_session, password_hash):
    """Platform administrator."""
    return make_owner(
        db_session, password_hash,
        name="Admin", email="admin@pdv.local", payment_status="paid", is_admin=True,
    )


@pytest.fixture(scope='function')
def employee_a(db_session, owner_a, password_hash):
    """Seller employed by Owner A."""
    employee = Employee(
        tenant_id=owner_a.id,
        name="Seller A",
        email="seller@loja-a.com",
        password_hash=password_hash,
        role="seller",
        permissions=[],
        is_active=True,
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def product_a(db_session, owner_a):
    """10 units @ 50.00 in tenant A."""
    return make_product(db_session, owner_a.id, name="Product A")


@pytest.fixture(scope='function')
def product_b(db_session, owner_b):
    """Product in tenant B."""
    return make_product(db_session, owner_b.id, name="Product B", quantity=5, sale_price_cents=2000)


@pytest.fixture(scope='function')
def client_a(db_session, owner_a):
    return make_client(db_session, owner_a.id, name="Client A")


@pytest.fixture(scope='function')
def client_b(db_session, owner_b):
    return make_client(db_session, owner_b.id, name="Client B")


def token_for(session, account) -> str:
    """Create a session for an account directly (skips the bcrypt check of /login)."""
    _, token = session_service.create_session(session, account)
    return token


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for an owner through the login endpoint."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_a_headers(db_session, owner_a):
    return auth_headers(token_for(db_session, owner_a))


@pytest.fixture(scope='function')
def owner_b_headers(db_session, owner_b):
    return auth_headers(token_for(db_session, owner_b))


@pytest.fixture(scope='function')
def employee_headers(db_session, employee_a):
    return auth_headers(token_for(db_session, employee_a))


@pytest.fixture(scope='function')
def admin_headers(db_session, admin):
    return auth_headers(token_for(db_session, admin))
