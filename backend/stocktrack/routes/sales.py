# Overview: Flask API routes for the sale lifecycle; parses input and returns JSON responses.

# backend/stocktrack/routes/sales.py
"""
Sale lifecycle routes.

SECURITY:
- Any actor may record a sale and list their own sales
- Reading a single sale is open to its seller and to admins
- Pending queue, full listing, approval, rejection and stock restore are admin only
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_actor, require_role
from ..errors import PermissionDeniedError
from ..models import Sale
from ..services import sales_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_sale,
    validate_payload,
)
from stocktrack.time_utils import parse_iso_datetime

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "qty_sold", "sales_date"},
    required_on_create={"product_id", "qty_sold"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_bound(key: str, value: str | None):
    if not value:
        return None
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        dt = None
    if dt is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return dt


@sales_bp.post("")
@require_actor
def sell_route():
    """
    Record a pending sale. Stock is consumed immediately.

    Body: product_id, qty_sold, sales_date (optional).
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
    enforce_rules_sale(patch)

    sale = sales_service.sell(
        patch["product_id"],
        patch["qty_sold"],
        g.actor,
        sales_date=patch.get("sales_date"),
    )
    current_app.logger.info(
        "Sale %s recorded by actor %s: product %s x%s",
        sale.id, g.actor.id, sale.product_id, sale.qty_sold,
    )
    return sale.to_dict(), 201


@sales_bp.get("/mine")
@require_actor
def my_sales_route():
    items = sales_service.list_sales(
        sold_by_id=g.actor.id,
        status=request.args.get("status") or None,
    )
    return {"items": [s.to_dict() for s in items], "count": len(items)}, 200


@sales_bp.get("/pending")
@require_actor
@require_role("admin")
def pending_sales_route():
    items = sales_service.list_pending_sales()
    return {"items": [s.to_dict() for s in items], "count": len(items)}, 200


@sales_bp.get("")
@require_actor
@require_role("admin")
def list_sales_route():
    """Query params (all optional): sold_by_id, status, start, end."""
    args = request.args
    sold_by_id = args.get("sold_by_id")

    items = sales_service.list_sales(
        sold_by_id=coerce_int("sold_by_id", sold_by_id) if sold_by_id else None,
        status=args.get("status") or None,
        start=_parse_bound("start", args.get("start")),
        end=_parse_bound("end", args.get("end")),
    )
    return {"items": [s.to_dict() for s in items], "count": len(items)}, 200


@sales_bp.get("/<int:sale_id>")
@require_actor
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not g.actor.is_admin and sale.sold_by_id != g.actor.id:
        raise PermissionDeniedError("Permission denied", details={"sale_id": sale_id})
    return sale.to_dict(), 200


@sales_bp.post("/<int:sale_id>/approve")
@require_actor
@require_role("admin")
def approve_sale_route(sale_id: int):
    sale = sales_service.approve_sale(sale_id, g.actor)
    current_app.logger.info("Sale %s approved by actor %s", sale.id, g.actor.id)
    return sale.to_dict(), 200


@sales_bp.post("/<int:sale_id>/reject")
@require_actor
@require_role("admin")
def reject_sale_route(sale_id: int):
    sale = sales_service.reject_sale(sale_id, g.actor)
    current_app.logger.info("Sale %s rejected by actor %s", sale.id, g.actor.id)
    return sale.to_dict(), 200


@sales_bp.post("/<int:sale_id>/restore-stock")
@require_actor
@require_role("admin")
def restore_stock_route(sale_id: int):
    movement = sales_service.restore_rejected_stock(sale_id, g.actor)
    current_app.logger.info(
        "Stock restored for rejected sale %s by actor %s (%s units)",
        sale_id, g.actor.id, movement.quantity,
    )
    return {
        "movement": movement.to_dict(),
        "qty_in_stock": movement.product.qty_in_stock,
    }, 201
