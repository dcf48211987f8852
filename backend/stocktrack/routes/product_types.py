# backend/stocktrack/routes/product_types.py
"""
Product type routes.

SECURITY: every route requires an admin actor.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_actor, require_role
from ..models import ProductType
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload

PRODUCT_TYPE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

product_types_bp = Blueprint("product_types", __name__, url_prefix="/api/product-types")


@product_types_bp.get("")
@require_actor
@require_role("admin")
def list_product_types_route():
    items = catalog_service.list_product_types()
    return {"items": [t.to_dict() for t in items], "count": len(items)}, 200


@product_types_bp.post("")
@require_actor
@require_role("admin")
def create_product_type_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ProductType, payload=payload, policy=PRODUCT_TYPE_POLICY, partial=False)

    product_type = catalog_service.create_product_type(patch["name"], patch.get("description"))
    current_app.logger.info("Product type %s created by actor %s", product_type.id, g.actor.id)
    return product_type.to_dict(), 201


@product_types_bp.get("/<int:product_type_id>")
@require_actor
@require_role("admin")
def get_product_type_route(product_type_id: int):
    product_type = catalog_service.get_product_type(product_type_id)
    products = catalog_service.find_products(product_type_id=product_type.id)
    return {**product_type.to_dict(), "products": [p.to_dict() for p in products]}, 200


@product_types_bp.put("/<int:product_type_id>")
@require_actor
@require_role("admin")
def update_product_type_route(product_type_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=ProductType, payload=payload, policy=PRODUCT_TYPE_POLICY, partial=True)

    product_type = catalog_service.update_product_type(product_type_id, patch)
    current_app.logger.info("Product type %s updated by actor %s", product_type.id, g.actor.id)
    return product_type.to_dict(), 200


@product_types_bp.delete("/<int:product_type_id>")
@require_actor
@require_role("admin")
def delete_product_type_route(product_type_id: int):
    catalog_service.delete_product_type(product_type_id)
    current_app.logger.info("Product type %s deleted by actor %s", product_type_id, g.actor.id)
    return {"ok": True}, 200

