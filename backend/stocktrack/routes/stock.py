# backend/stocktrack/routes/stock.py
"""
Stock movement routes.

SECURITY: admin only. Movements are append-only: there is no update or delete.

Time semantics:
- movement_date accepts ISO-8601 with Z/offsets; stored UTC-naive.
- start/end filters are inclusive.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_actor, require_role
from ..models import StockMovement
from ..services import stock_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_stock_movement,
    validate_payload,
)
from stocktrack.time_utils import parse_iso_datetime

STOCK_MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "reason", "cost_price", "movement_date"},
    required_on_create={"product_id", "type", "quantity", "reason"},
)

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock-movements")


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


@stock_bp.post("")
@require_actor
@require_role("admin")
def record_movement_route():
    """
    Record a manual stock movement (restock, correction, write-off).

    Body: product_id, type ('in'|'out'), quantity, reason,
    cost_price (optional, 'in' only), movement_date (optional).
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=StockMovement, payload=payload, policy=STOCK_MOVEMENT_POLICY, partial=False)
    enforce_rules_stock_movement(patch)

    movement = stock_service.record_movement(
        product_id=patch["product_id"],
        movement_type=patch["type"],
        quantity=patch["quantity"],
        reason=patch["reason"],
        actor=g.actor,
        cost_price=patch.get("cost_price"),
        movement_date=patch.get("movement_date"),
    )
    current_app.logger.info(
        "Stock %s of %s for product %s by actor %s",
        movement.type, movement.quantity, movement.product_id, g.actor.id,
    )
    return {
        "movement": movement.to_dict(),
        "qty_in_stock": movement.product.qty_in_stock,
    }, 201


@stock_bp.get("")
@require_actor
@require_role("admin")
def list_movements_route():
    """
    Query params (all optional): product_id, type, start, end, limit.
    """
    args = request.args
    product_id = args.get("product_id")
    limit = args.get("limit")

    items = stock_service.list_movements(
        product_id=coerce_int("product_id", product_id) if product_id else None,
        movement_type=args.get("type") or None,
        start=_parse_bound("start", args.get("start")),
        end=_parse_bound("end", args.get("end")),
        limit=coerce_int("limit", limit) if limit else None,
    )
    return {"items": [m.to_dict() for m in items], "count": len(items)}, 200


@stock_bp.get("/<int:movement_id>")
@require_actor
@require_role("admin")
def get_movement_route(movement_id: int):
    return stock_service.get_movement(movement_id).to_dict(), 200


@stock_bp.get("/reconcile")
@require_actor
@require_role("admin")
def reconcile_route():
    discrepancies = stock_service.reconcile_stock()
    if discrepancies:
        current_app.logger.warning("Stock ledger diverges for %d product(s)", len(discrepancies))
    return {"ok": not discrepancies, "discrepancies": discrepancies}, 200
