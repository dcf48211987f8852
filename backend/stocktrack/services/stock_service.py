# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

# backend/stocktrack/services/stock_service.py

from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import case, func

from ..actors import Actor
from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..validation import MOVEMENT_TYPES
from stocktrack.time_utils import utcnow, parse_iso_datetime, to_utc_naive
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Stock Ledger Invariants (authoritative)

- StockMovement rows are append-only; quantity changes happen only here.
- Product.qty_in_stock == SUM(in.quantity) - SUM(out.quantity) for the product.
- Applying a movement and appending its record happen in one DB transaction:
  either both are visible or neither is.
- 'out' fails with InsufficientStockError when quantity > qty_in_stock, checked
  against the quantity read inside the same write transaction (no partial
  decrement).
- 'in' with a cost_price makes it the product's new cost_price (last-in cost
  basis, not a weighted average). Historical cost is StockMovement.cost_price.
"""


def _parse_movement_date(value) -> datetime:
    """
    Normalize movement_date to canonical UTC-naive datetime.

    Accepts None (now), aware/naive datetimes and ISO-8601 strings.
    """
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        dt = to_utc_naive(value)
    elif isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise ValidationError("invalid movement_date")
    else:
        raise ValidationError("invalid movement_date")

    if dt > utcnow() + timedelta(minutes=2):
        raise ValidationError("movement_date cannot be in the future")
    return dt


def get_product_for_update(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFoundError("product", product_id)
    return product


def apply_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    reason: str,
    actor: Actor | None = None,
    cost_price: Decimal | None = None,
    movement_date: datetime | None = None,
    sale_id: int | None = None,
) -> StockMovement:
    """
    Core movement logic without locking, retry, or commit.

    The caller owns the transaction and must have read `product` inside it
    (see get_product_for_update). Used by record_movement(), product creation
    and the sale lifecycle.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")

    if movement_type == "out":
        if quantity > product.qty_in_stock:
            raise InsufficientStockError(available=product.qty_in_stock, requested=quantity)
        product.qty_in_stock -= quantity
        recorded_cost = product.cost_price
    else:
        product.qty_in_stock += quantity
        if cost_price is not None:
            product.cost_price = cost_price
        recorded_cost = product.cost_price

    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=quantity,
        cost_price=recorded_cost,
        reason=reason,
        recorded_by_id=actor.id if actor else None,
        sale_id=sale_id,
        movement_date=movement_date or utcnow(),
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def record_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str,
    actor: Actor | None = None,
    cost_price: Decimal | None = None,
    movement_date=None,
) -> StockMovement:
    """
    Record a manual stock change (restock, correction, write-off).

    Raises NotFoundError, InsufficientStockError or ValidationError; on any
    failure nothing is written.
    """
    if not reason or not str(reason).strip():
        raise ValidationError("reason is required")
    if movement_type == "out" and cost_price is not None:
        raise ValidationError("cost_price must be omitted for 'out' movements")

    moved_at = _parse_movement_date(movement_date)

    def _op():
        begin_write()
        product = get_product_for_update(product_id)
        movement = apply_movement(
            product,
            movement_type=movement_type,
            quantity=quantity,
            reason=str(reason).strip(),
            actor=actor,
            cost_price=cost_price,
            movement_date=moved_at,
        )
        db.session.commit()
        return movement

    return run_with_retry(_op)


def get_movement(movement_id: int) -> StockMovement:
    movement = db.session.get(StockMovement, movement_id)
    if movement is None:
        raise NotFoundError("stock_movement", movement_id)
    return movement


def list_movements(
    *,
    product_id: int | None = None,
    movement_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[StockMovement]:
    """Movements newest first; start/end are inclusive UTC-naive bounds."""
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'")

    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if movement_type is not None:
        q = q.filter(StockMovement.type == movement_type)
    if start is not None:
        q = q.filter(StockMovement.movement_date >= start)
    if end is not None:
        q = q.filter(StockMovement.movement_date <= end)

    q = q.order_by(StockMovement.movement_date.desc(), StockMovement.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def _signed_sum():
    return func.coalesce(
        func.sum(
            case(
                (StockMovement.type == "in", StockMovement.quantity),
                else_=-StockMovement.quantity,
            )
        ),
        0,
    )


def ledger_quantity(product_id: int) -> int:
    """Quantity reconstructed from the movement history: SUM(in) - SUM(out)."""
    total = db.session.query(_signed_sum()).filter(
        StockMovement.product_id == product_id
    ).scalar()
    return int(total or 0)


def reconcile_stock() -> list[dict]:
    """
    Compare every product's cached qty_in_stock with its ledger sum.

    Returns one entry per divergent product; an empty list means the ledger
    invariant holds everywhere.
    """
    ledger = dict(
        db.session.query(StockMovement.product_id, _signed_sum())
        .group_by(StockMovement.product_id)
        .all()
    )

    discrepancies = []
    for product in db.session.query(Product).order_by(Product.id.asc()).all():
        expected = int(ledger.get(product.id, 0) or 0)
        if expected != product.qty_in_stock:
            discrepancies.append(
                {
                    "product_id": product.id,
                    "name": product.name,
                    "qty_in_stock": product.qty_in_stock,
                    "ledger_quantity": expected,
                    "difference": product.qty_in_stock - expected,
                }
            )
    return discrepancies
