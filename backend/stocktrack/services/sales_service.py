"""
Sale Lifecycle - sell, then approve or reject.

State machine: pending -> approved | pending -> rejected. Both targets are
terminal.

Stock is consumed at sell time, not at approval: a pending sale already holds
its quantity. Rejecting a sale does NOT put the stock back; restoring it is an
explicit 'in' movement through stock_service (see restore_rejected_stock).
Approval and rejection never touch quantities.
"""

from datetime import datetime, timedelta

from ..actors import Actor
from ..errors import AlreadyFinalizedError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Sale, StockMovement, SALE_PENDING, SALE_APPROVED, SALE_REJECTED, SALE_STATUSES
from stocktrack.time_utils import utcnow, to_utc_naive
from .concurrency import begin_write, run_with_retry
from .stock_service import apply_movement, get_product_for_update


def _sale_reason(sale: Sale) -> str:
    return f"Sale #{sale.id}"


def sell(
    product_id: int,
    qty_sold: int,
    actor: Actor,
    sales_date: datetime | None = None,
) -> Sale:
    """
    Record a pending sale and consume its stock.

    Read, check and write happen in one transaction: the product row is read
    under the write lock, price/cost are frozen onto the sale, and the 'out'
    movement linked to the sale decrements qty_in_stock.

    Raises NotFoundError or InsufficientStockError(available, requested);
    on failure neither the sale nor the decrement is written.
    """
    if isinstance(qty_sold, bool) or not isinstance(qty_sold, int) or qty_sold <= 0:
        raise ValidationError("qty_sold must be a positive integer")
    if actor is None:
        raise ValidationError("actor is required")

    sold_at = to_utc_naive(sales_date) if sales_date else None
    if sold_at is not None and sold_at > utcnow() + timedelta(minutes=2):
        raise ValidationError("sales_date cannot be in the future")

    def _op():
        begin_write()
        product = get_product_for_update(product_id)
        if qty_sold > product.qty_in_stock:
            raise InsufficientStockError(available=product.qty_in_stock, requested=qty_sold)

        unit_price = product.price
        unit_cost = product.cost_price
        sale = Sale(
            product_id=product.id,
            qty_sold=qty_sold,
            unit_price=unit_price,
            unit_cost=unit_cost,
            total_price=unit_price * qty_sold,
            profit=(unit_price - unit_cost) * qty_sold,
            status=SALE_PENDING,
            sold_by_id=actor.id,
            sales_date=sold_at or utcnow(),
        )
        db.session.add(sale)
        db.session.flush()  # sale.id is the movement's back-reference

        apply_movement(
            product,
            movement_type="out",
            quantity=qty_sold,
            reason=_sale_reason(sale),
            actor=actor,
            movement_date=sale.sales_date,
            sale_id=sale.id,
        )

        db.session.commit()
        return sale

    return run_with_retry(_op)


def _finalize(sale_id: int, target_status: str, actor: Actor) -> Sale:
    """
    Compare-and-swap pending -> target_status.

    The conditional UPDATE only matches a row still in 'pending', so two
    concurrent approvals cannot both win; the loser sees rowcount 0 and gets
    AlreadyFinalizedError with the status the winner wrote.
    """
    if actor is None:
        raise ValidationError("actor is required")

    def _op():
        now = utcnow()
        updated = (
            db.session.query(Sale)
            .filter(Sale.id == sale_id, Sale.status == SALE_PENDING)
            .update(
                {
                    Sale.status: target_status,
                    Sale.approved_by_id: actor.id,
                    Sale.finalized_at: now,
                },
                synchronize_session=False,
            )
        )

        if updated == 0:
            db.session.rollback()
            sale = db.session.get(Sale, sale_id)
            if sale is None:
                raise NotFoundError("sale", sale_id)
            raise AlreadyFinalizedError(sale.status)

        db.session.commit()
        return db.session.get(Sale, sale_id)

    return run_with_retry(_op)


def approve_sale(sale_id: int, actor: Actor) -> Sale:
    """pending -> approved. The sale becomes financially realized."""
    return _finalize(sale_id, SALE_APPROVED, actor)


def reject_sale(sale_id: int, actor: Actor) -> Sale:
    """pending -> rejected. Stock stays consumed; see restore_rejected_stock()."""
    return _finalize(sale_id, SALE_REJECTED, actor)


def restore_rejected_stock(sale_id: int, actor: Actor):
    """
    Compensating 'in' movement for a rejected sale.

    Only explicit calls restore stock; reject_sale() never does. Restoring the
    same sale twice is refused so the ledger cannot be inflated.
    """
    def _op():
        begin_write()
        sale = db.session.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError("sale", sale_id)
        if sale.status != SALE_REJECTED:
            raise ValidationError(
                "Only rejected sales can have their stock restored",
                details={"current_status": sale.status},
            )

        already = (
            db.session.query(StockMovement)
            .filter(StockMovement.sale_id == sale.id, StockMovement.type == "in")
            .first()
        )
        if already is not None:
            raise ValidationError(
                "Stock for this sale was already restored",
                details={"movement_id": already.id},
            )

        product = get_product_for_update(sale.product_id)
        movement = apply_movement(
            product,
            movement_type="in",
            quantity=sale.qty_sold,
            reason=f"Restock from rejected sale #{sale.id}",
            actor=actor,
            sale_id=sale.id,
        )
        db.session.commit()
        return movement

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("sale", sale_id)
    return sale


def list_pending_sales() -> list[Sale]:
    return list_sales(status=SALE_PENDING)


def list_sales(
    *,
    sold_by_id: int | None = None,
    status: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Sale]:
    """Sales newest first; start/end are inclusive UTC-naive bounds."""
    if status is not None and status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(SALE_STATUSES)}")

    q = db.session.query(Sale)
    if sold_by_id is not None:
        q = q.filter(Sale.sold_by_id == sold_by_id)
    if status is not None:
        q = q.filter(Sale.status == status)
    if start is not None:
        q = q.filter(Sale.sales_date >= start)
    if end is not None:
        q = q.filter(Sale.sales_date <= end)
    return q.order_by(Sale.sales_date.desc(), Sale.id.desc()).all()
