"""
Storage failures during a write leave the ledger untouched and surface as
StorageError, whether the failure is transient (retried) or not.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from stocktrack.errors import StorageError
from stocktrack.extensions import db
from stocktrack.models import Product, Sale, StockMovement
from stocktrack.services import catalog_service, sales_service, stock_service


def _transient():
    return OperationalError("COMMIT", {}, Exception("disk I/O error"))


def _permanent():
    return SQLAlchemyError("write failed")


@pytest.fixture
def failing_commit(monkeypatch):
    """Make every commit on the scoped session raise the given error."""
    calls = []

    def _install(make_error):
        def _fail():
            calls.append(make_error)
            raise make_error()

        monkeypatch.setattr(db.session, "commit", _fail)
        monkeypatch.setattr("stocktrack.services.concurrency.time.sleep", lambda seconds: None)
        return calls

    yield _install
    monkeypatch.undo()


@pytest.mark.parametrize("make_error, attempts", [(_transient, 3), (_permanent, 1)])
def test_record_movement_storage_failure_writes_nothing(product, admin, failing_commit, make_error, attempts):
    movements_before = StockMovement.query.count()
    calls = failing_commit(make_error)

    with pytest.raises(StorageError) as exc_info:
        stock_service.record_movement(
            product_id=product.id, movement_type="out", quantity=4, reason="Write-off", actor=admin,
        )

    assert exc_info.value.kind == "storage_error"
    assert exc_info.value.status_code == 503
    assert len(calls) == attempts
    assert db.session.get(Product, product.id).qty_in_stock == 10
    assert StockMovement.query.count() == movements_before
    assert stock_service.reconcile_stock() == []


@pytest.mark.parametrize("make_error, attempts", [(_transient, 3), (_permanent, 1)])
def test_sell_storage_failure_writes_nothing(product, employee, failing_commit, make_error, attempts):
    movements_before = StockMovement.query.count()
    calls = failing_commit(make_error)

    with pytest.raises(StorageError) as exc_info:
        sales_service.sell(product.id, 3, employee)

    assert exc_info.value.kind == "storage_error"
    assert exc_info.value.details["reason"] == make_error().__class__.__name__
    assert len(calls) == attempts
    assert db.session.get(Product, product.id).qty_in_stock == 10
    assert Sale.query.count() == 0
    assert StockMovement.query.count() == movements_before
    assert stock_service.reconcile_stock() == []


def test_approve_storage_failure_keeps_sale_pending(product, employee, admin, failing_commit):
    sale = sales_service.sell(product.id, 2, employee)
    failing_commit(_permanent)

    with pytest.raises(StorageError):
        sales_service.approve_sale(sale.id, admin)

    assert db.session.get(Sale, sale.id).status == "pending"
    assert stock_service.reconcile_stock() == []


def test_integrity_error_without_sku_is_not_a_duplicate(product_type, admin, failing_commit):
    failing_commit(lambda: IntegrityError("INSERT INTO products", {}, Exception("CHECK constraint failed")))

    with pytest.raises(StorageError) as exc_info:
        catalog_service.create_product(
            patch={"name": "Linen Shirt", "price": Decimal("12.00"), "cost_price": Decimal("7.00"),
                   "qty_in_stock": 3},
            product_type_id=product_type.id,
            actor=admin,
        )

    assert exc_info.value.kind == "storage_error"
    assert exc_info.value.details["reason"] == "IntegrityError"
    assert Product.query.count() == 0
    assert StockMovement.query.count() == 0
