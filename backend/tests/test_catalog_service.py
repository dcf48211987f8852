from decimal import Decimal

import pytest

from stocktrack.errors import (
    DuplicateNameError,
    DuplicateSkuError,
    HasDependentProductsError,
    HasDependentSalesError,
    NotFoundError,
    ValidationError,
)
from stocktrack.models import Product, StockMovement
from stocktrack.services import catalog_service, sales_service, stock_service


def test_create_product_type_rejects_duplicate_name(product_type):
    with pytest.raises(DuplicateNameError) as exc_info:
        catalog_service.create_product_type("Shirts")

    assert exc_info.value.kind == "duplicate"
    assert exc_info.value.details["field"] == "name"


def test_product_types_are_listed_by_name(db_session):
    catalog_service.create_product_type("Trousers")
    catalog_service.create_product_type("Jackets")

    names = [t.name for t in catalog_service.list_product_types()]
    assert names == ["Jackets", "Trousers"]


def test_update_product_type_to_taken_name_fails(product_type):
    other = catalog_service.create_product_type("Jackets")

    with pytest.raises(DuplicateNameError):
        catalog_service.update_product_type(other.id, {"name": "Shirts"})

    updated = catalog_service.update_product_type(other.id, {"description": "Outerwear"})
    assert updated.description == "Outerwear"


def test_delete_product_type_blocked_while_products_reference_it(product_type, product):
    with pytest.raises(HasDependentProductsError) as exc_info:
        catalog_service.delete_product_type(product_type.id)
    assert exc_info.value.product_count == 1

    catalog_service.delete_product(product.id)
    catalog_service.delete_product_type(product_type.id)

    with pytest.raises(NotFoundError):
        catalog_service.get_product_type(product_type.id)


def test_create_product_books_initial_stock_movement(product):
    assert product.qty_in_stock == 10

    movements = stock_service.list_movements(product_id=product.id)
    assert len(movements) == 1
    assert movements[0].type == "in"
    assert movements[0].quantity == 10
    assert movements[0].reason == catalog_service.INITIAL_STOCK_REASON
    assert movements[0].cost_price == Decimal("6.00")
    assert stock_service.ledger_quantity(product.id) == 10


def test_create_product_without_stock_has_no_movements(make_product):
    p = make_product("Linen Shirt", qty=0)

    assert p.qty_in_stock == 0
    assert stock_service.list_movements(product_id=p.id) == []


def test_create_product_rejects_duplicate_sku(product, make_product):
    with pytest.raises(DuplicateSkuError):
        make_product("Other Shirt", sku="SH-001")

    # Failed create leaves nothing behind
    assert Product.query.count() == 1


def test_create_product_requires_existing_type(db_session, admin):
    with pytest.raises(NotFoundError):
        catalog_service.create_product(
            patch={"name": "Ghost", "price": Decimal("1.00"), "cost_price": Decimal("0.50")},
            product_type_id=999,
            actor=admin,
        )


def test_update_product_refuses_quantity(product):
    with pytest.raises(ValidationError):
        catalog_service.update_product(product.id, {"qty_in_stock": 50})

    assert catalog_service.get_product(product.id).qty_in_stock == 10


def test_update_product_changes_attributes_and_type(product):
    jackets = catalog_service.create_product_type("Jackets")

    updated = catalog_service.update_product(
        product.id,
        {"price": Decimal("12.50"), "color": "navy", "product_type_id": jackets.id},
    )

    assert updated.price == Decimal("12.50")
    assert updated.color == "navy"
    assert updated.product_type_id == jackets.id

    with pytest.raises(NotFoundError):
        catalog_service.update_product(product.id, {"product_type_id": 999})


def test_find_products_combines_filters(make_product):
    make_product("Cheap Tee", price="5.00", cost="2.00", size="S", color="white")
    make_product("Mid Tee", price="15.00", cost="8.00", size="M", color="white")
    make_product("Dear Tee", price="45.00", cost="20.00", size="M", color="black")
    make_product("Sold Out Tee", qty=0, price="15.00", cost="8.00", size="M", color="white")

    in_band = catalog_service.find_products(min_price=Decimal("10.00"), max_price=Decimal("20.00"))
    assert [p.name for p in in_band] == ["Mid Tee", "Sold Out Tee"]

    in_stock_white_m = catalog_service.find_products(in_stock=True, size="M", color="white")
    assert [p.name for p in in_stock_white_m] == ["Mid Tee"]

    sold_out = catalog_service.find_products(in_stock=False)
    assert [p.name for p in sold_out] == ["Sold Out Tee"]


def test_delete_product_with_sales_is_refused(product, employee, admin):
    sale = sales_service.sell(product.id, 2, employee)
    sales_service.reject_sale(sale.id, admin)

    with pytest.raises(HasDependentSalesError) as exc_info:
        catalog_service.delete_product(product.id)
    assert exc_info.value.sales_count == 1


def test_delete_product_removes_its_movements_only(product, make_product):
    other = make_product("Polo", sku="PO-001", qty=4)

    catalog_service.delete_product(product.id)

    with pytest.raises(NotFoundError):
        catalog_service.get_product(product.id)
    remaining = StockMovement.query.all()
    assert [m.product_id for m in remaining] == [other.id]


@pytest.mark.parametrize(
    "overrides",
    [
        {"price": Decimal("-1.00")},
        {"cost_price": Decimal("-0.01")},
        {"qty_in_stock": -2},
    ],
)
def test_create_product_with_negative_values_is_a_validation_error(product_type, admin, overrides):
    patch = {"name": "Bad", "price": Decimal("1.00"), "cost_price": Decimal("1.00")}
    patch.update(overrides)

    with pytest.raises(ValidationError) as exc_info:
        catalog_service.create_product(patch=patch, product_type_id=product_type.id, actor=admin)

    assert exc_info.value.kind == "validation_error"
    assert Product.query.count() == 0


@pytest.mark.parametrize(
    "patch",
    [
        {"cost_price": Decimal("-5")},
        {"price": Decimal("-0.50")},
        {"price": None},
    ],
)
def test_update_product_with_invalid_money_is_a_validation_error(product, patch):
    with pytest.raises(ValidationError) as exc_info:
        catalog_service.update_product(product.id, patch)

    assert exc_info.value.kind == "validation_error"
    refreshed = catalog_service.get_product(product.id)
    assert refreshed.price == Decimal("10.00")
    assert refreshed.cost_price == Decimal("6.00")


def test_blank_sku_is_stored_as_none(make_product):
    first = make_product("First", sku="")
    second = make_product("Second", sku="")

    assert first.sku is None
    assert second.sku is None
