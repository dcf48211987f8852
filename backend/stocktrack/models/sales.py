from __future__ import annotations

from ..extensions import db
from stocktrack.time_utils import to_utc_z, utcnow

SALE_PENDING = "pending"
SALE_APPROVED = "approved"
SALE_REJECTED = "rejected"
SALE_STATUSES = (SALE_PENDING, SALE_APPROVED, SALE_REJECTED)


class Sale(db.Model):
    """
    A single-product sale awaiting (or past) administrative review.

    Lifecycle: pending -> approved | rejected, both terminal.

    Pricing is frozen at creation: unit_price/unit_cost are copied from the
    product, total_price = unit_price * qty_sold and
    profit = (unit_price - unit_cost) * qty_sold. Later product edits never
    touch these columns.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("qty_sold > 0", name="ck_sales_qty_positive"),
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name="ck_sales_status"
        ),
        # Reports filter on status and date together
        db.Index("ix_sales_status_date", "status", "sales_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    qty_sold = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    unit_cost = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    total_price = db.Column(db.Numeric(14, 2, asdecimal=True), nullable=False)
    profit = db.Column(db.Numeric(14, 2, asdecimal=True), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_PENDING, index=True)

    sold_by_id = db.Column(db.Integer, nullable=False, index=True)
    sales_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Set only on the transition out of pending
    approved_by_id = db.Column(db.Integer, nullable=True)
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} qty={self.qty_sold} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "qty_sold": self.qty_sold,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "total_price": self.total_price,
            "profit": self.profit,
            "status": self.status,
            "sold_by_id": self.sold_by_id,
            "sales_date": to_utc_z(self.sales_date),
            "approved_by_id": self.approved_by_id,
            "finalized_at": to_utc_z(self.finalized_at) if self.finalized_at else None,
            "created_at": to_utc_z(self.created_at),
        }
