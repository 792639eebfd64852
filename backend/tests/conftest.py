"""
Pytest fixtures for RetailPOS backend tests.

Provides the application, a clean database per test, staff users with
session tokens, and catalog factories.
"""

from decimal import Decimal

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Customer, Product, Supplier
from retailpos.services.auth_service import create_user

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SALE_TAX_RATE': '0',
        'LOG_LEVEL': 'WARNING',
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "admin@retailpos.test", TEST_PASSWORD, role="admin", full_name="Ada Admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return create_user("manager", "manager@retailpos.test", TEST_PASSWORD, role="manager", full_name="Max Manager")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return create_user("cashier", "cashier@retailpos.test", TEST_PASSWORD, role="cashier", full_name="Cara Cashier")


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, "cashier", TEST_PASSWORD))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, "manager", TEST_PASSWORD))


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(sku, name, price="10.00", quantity=100, **extra)."""
    def _make(sku, name, price="10.00", quantity=100, **extra):
        fields = {
            "cost_price": Decimal(price) / 2,
            "min_stock": 10,
            "variants": [],
            "images": [],
        }
        fields.update(extra)
        product = Product(
            sku=sku,
            name=name,
            selling_price=Decimal(price),
            quantity=quantity,
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Northwind Traders", email="orders@northwind.test", phone="555-0100")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        first_name="Maria",
        last_name="Lopez",
        email="maria@example.com",
        phone="555-0200",
        tags=[],
    )
    db_session.add(customer)
    db_session.commit()
    return customer


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
