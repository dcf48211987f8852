# backend/stocktrack/services/catalog_service.py
"""
Catalog Store: product types and products.

Quantity is not an editable product attribute. A product's initial stock is
booked as an 'in' movement when it is created; every later change goes
through stock_service.
"""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..actors import Actor
from ..errors import (
    DuplicateNameError,
    DuplicateSkuError,
    HasDependentProductsError,
    HasDependentSalesError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Product, ProductType, Sale, StockMovement
from ..validation import enforce_rules_product
from .concurrency import run_with_retry
from .stock_service import apply_movement

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "sku", "price", "cost_price",
    "size", "color", "other_attributes",
}
PRODUCT_TYPE_MUTABLE_FIELDS = {"name", "description"}

INITIAL_STOCK_REASON = "Initial stock"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# ---------------------------------------------------------------------------
# Product types
# ---------------------------------------------------------------------------

def _ensure_type_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(ProductType).filter(ProductType.name == name)
    if exclude_id is not None:
        q = q.filter(ProductType.id != exclude_id)
    if q.first() is not None:
        raise DuplicateNameError(name)


def create_product_type(name: str, description: str | None = None) -> ProductType:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    def _op():
        _ensure_type_name_free(name)
        product_type = ProductType(name=name, description=description)
        db.session.add(product_type)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create of the same name
            db.session.rollback()
            raise DuplicateNameError(name)
        return product_type

    return run_with_retry(_op)


def get_product_type(product_type_id: int) -> ProductType:
    product_type = db.session.get(ProductType, product_type_id)
    if product_type is None:
        raise NotFoundError("product_type", product_type_id)
    return product_type


def list_product_types() -> list[ProductType]:
    return db.session.query(ProductType).order_by(ProductType.name.asc()).all()


def update_product_type(product_type_id: int, patch: dict) -> ProductType:
    def _op():
        product_type = get_product_type(product_type_id)

        name = patch.get("name")
        if name is not None and name != product_type.name:
            _ensure_type_name_free(name, exclude_id=product_type.id)

        for k, v in patch.items():
            if k in PRODUCT_TYPE_MUTABLE_FIELDS:
                setattr(product_type, k, v)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateNameError(name)
        return product_type

    return run_with_retry(_op)


def delete_product_type(product_type_id: int) -> None:
    def _op():
        product_type = get_product_type(product_type_id)
        product_count = (
            db.session.query(Product).filter(Product.product_type_id == product_type.id).count()
        )
        if product_count:
            raise HasDependentProductsError(product_count)

        db.session.delete(product_type)
        db.session.commit()

    run_with_retry(_op)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _ensure_sku_free(sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    q = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise DuplicateSkuError(sku)


def create_product(
    *,
    patch: dict,
    product_type_id: int,
    actor: Actor | None = None,
) -> Product:
    """
    Create a product from a validated patch dict.

    patch may carry qty_in_stock; a positive value is booked as an
    "Initial stock" movement at the product's cost price in the same
    transaction, so the ledger and the cached quantity start in agreement.

    Raises:
        ValidationError: missing field, or negative price, cost or quantity
        NotFoundError: product type does not exist
        DuplicateSkuError: SKU already used by another product
    """
    patch = dict(patch)
    enforce_rules_product(patch)
    for required in ("name", "price", "cost_price"):
        if patch.get(required) is None:
            raise ValidationError(f"{required} is required")

    initial_qty = patch.get("qty_in_stock") or 0

    def _op():
        product_type = get_product_type(product_type_id)
        _ensure_sku_free(patch.get("sku"))

        p = Product(product_type_id=product_type.id, qty_in_stock=0)
        apply_product_patch(p, patch)
        db.session.add(p)

        try:
            db.session.flush()  # ensure p.id exists before the movement
            if initial_qty > 0:
                apply_movement(
                    p,
                    movement_type="in",
                    quantity=initial_qty,
                    reason=INITIAL_STOCK_REASON,
                    actor=actor,
                )
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if patch.get("sku"):
                raise DuplicateSkuError(patch["sku"])
            raise
        return p

    return run_with_retry(_op)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)
    return product


def update_product(product_id: int, patch: dict) -> Product:
    """
    Partial update of product attributes.

    qty_in_stock is rejected here: quantity only moves through the ledger.
    """
    if "qty_in_stock" in patch:
        raise ValidationError("qty_in_stock can only change through stock movements")
    patch = dict(patch)
    enforce_rules_product(patch)
    for required in ("name", "price", "cost_price"):
        if required in patch and patch[required] is None:
            raise ValidationError(f"{required} cannot be null")

    def _op():
        product = get_product(product_id)

        new_type_id = patch.get("product_type_id")
        if new_type_id is not None and new_type_id != product.product_type_id:
            product.product_type_id = get_product_type(new_type_id).id

        sku = patch.get("sku")
        if sku and sku != product.sku:
            _ensure_sku_free(sku, exclude_id=product.id)

        apply_product_patch(product, patch)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            if sku:
                raise DuplicateSkuError(sku)
            raise
        return product

    return run_with_retry(_op)


def find_products(
    *,
    product_type_id: int | None = None,
    in_stock: bool | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    size: str | None = None,
    color: str | None = None,
) -> list[Product]:
    """
    Products matching every supplied filter, ordered by name ascending.

    Filters combine with AND; None means no constraint. in_stock=True keeps
    products with qty_in_stock > 0, in_stock=False keeps the sold-out ones.
    """
    q = db.session.query(Product)

    if product_type_id is not None:
        q = q.filter(Product.product_type_id == product_type_id)
    if in_stock is True:
        q = q.filter(Product.qty_in_stock > 0)
    elif in_stock is False:
        q = q.filter(Product.qty_in_stock == 0)
    if min_price is not None:
        q = q.filter(Product.price >= min_price)
    if max_price is not None:
        q = q.filter(Product.price <= max_price)
    if size is not None:
        q = q.filter(Product.size == size)
    if color is not None:
        q = q.filter(Product.color == color)

    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def delete_product(product_id: int) -> None:
    """
    Delete a product that no sale references, whatever the sale status.

    The product's own movement history goes with it; movements of other
    products are untouched.
    """
    def _op():
        product = get_product(product_id)

        sales_count = db.session.query(Sale).filter(Sale.product_id == product.id).count()
        if sales_count:
            raise HasDependentSalesError(sales_count)

        db.session.query(StockMovement).filter(
            StockMovement.product_id == product.id
        ).delete(synchronize_session=False)
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)
