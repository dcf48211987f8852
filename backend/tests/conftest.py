"""
Pytest fixtures for StockTrack backend tests.

Provides the test app on in-memory SQLite, per-test table cleanup, actors,
and a seeded product type / product.
"""

from decimal import Decimal

import pytest

from stocktrack import create_app
from stocktrack.actors import Actor, ROLE_ADMIN, ROLE_EMPLOYEE
from stocktrack.config import TestConfig
from stocktrack.extensions import db
from stocktrack.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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


@pytest.fixture
def admin():
    return Actor(id=1, role=ROLE_ADMIN)


@pytest.fixture
def employee():
    return Actor(id=2, role=ROLE_EMPLOYEE)


@pytest.fixture
def admin_headers(admin):
    return {"X-Actor-Id": str(admin.id), "X-Actor-Role": admin.role}


@pytest.fixture
def employee_headers(employee):
    return {"X-Actor-Id": str(employee.id), "X-Actor-Role": employee.role}


@pytest.fixture
def product_type(db_session):
    """Shirts type with no products."""
    return catalog_service.create_product_type("Shirts", "Button-down and casual shirts")


@pytest.fixture
def make_product(db_session, product_type, admin):
    """Factory for products of the Shirts type; initial stock goes through the ledger."""
    def _make(name="Oxford Shirt", *, qty=10, price="10.00", cost="6.00", sku=None,
              product_type_id=None, **extra):
        patch = {
            "name": name,
            "price": Decimal(price),
            "cost_price": Decimal(cost),
            "qty_in_stock": qty,
            "sku": sku,
        }
        patch.update(extra)
        return catalog_service.create_product(
            patch=patch,
            product_type_id=product_type_id or product_type.id,
            actor=admin,
        )

    return _make


@pytest.fixture
def product(make_product):
    """price 10.00, cost 6.00, qty_in_stock 10."""
    return make_product(sku="SH-001", size="M", color="blue")
