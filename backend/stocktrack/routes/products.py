# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/stocktrack/routes/products.py
"""
Product catalog routes.

SECURITY: every route requires an actor.
- Listing and reading products is open to employees
- Create, update and delete require the admin role

qty_in_stock is accepted on create only (booked as an initial-stock movement);
afterwards quantity changes go through /api/stock-movements.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_actor, require_role
from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    coerce_money,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_FIELDS = {
    "product_type_id", "name", "description", "sku", "price", "cost_price",
    "size", "color", "other_attributes",
}

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS | {"qty_in_stock"},
    required_on_create={"product_type_id", "name", "price", "cost_price"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _parse_bool(key: str, value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"{key} must be true or false")


@products_bp.get("")
@require_actor
def list_products_route():
    """
    List products matching every supplied filter.

    Query params (all optional):
    - product_type_id: int
    - in_stock: true|false
    - min_price / max_price: decimal, inclusive
    - size, color: exact match
    """
    args = request.args
    product_type_id = args.get("product_type_id")
    min_price = args.get("min_price")
    max_price = args.get("max_price")

    items = catalog_service.find_products(
        product_type_id=coerce_int("product_type_id", product_type_id) if product_type_id else None,
        in_stock=_parse_bool("in_stock", args.get("in_stock")),
        min_price=coerce_money("min_price", min_price) if min_price else None,
        max_price=coerce_money("max_price", max_price) if max_price else None,
        size=args.get("size") or None,
        color=args.get("color") or None,
    )
    return {"items": [p.to_dict() for p in items], "count": len(items)}, 200


@products_bp.get("/<int:product_id>")
@require_actor
def get_product_route(product_id: int):
    return catalog_service.get_product(product_id).to_dict(), 200


@products_bp.post("")
@require_actor
@require_role("admin")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    product_type_id = patch.pop("product_type_id")
    product = catalog_service.create_product(patch=patch, product_type_id=product_type_id, actor=g.actor)

    current_app.logger.info(
        "Product %s created by actor %s with initial stock %s",
        product.id, g.actor.id, product.qty_in_stock,
    )
    return product.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_actor
@require_role("admin")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    if "qty_in_stock" in payload:
        raise ValidationError("qty_in_stock can only change through stock movements")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    product = catalog_service.update_product(product_id, patch)
    current_app.logger.info("Product %s updated by actor %s", product.id, g.actor.id)
    return product.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_actor
@require_role("admin")
def delete_product_route(product_id: int):
    catalog_service.delete_product(product_id)
    current_app.logger.info("Product %s deleted by actor %s", product_id, g.actor.id)
    return {"ok": True}, 200
