from __future__ import annotations

from ..extensions import db
from stocktrack.time_utils import to_utc_z, utcnow


class StockMovement(db.Model):
    """
    Append-only record of one quantity change.

    Rows are never updated or deleted individually; they are the audit trail
    from which Product.qty_in_stock is reconstructable. cost_price is the cost
    recorded at movement time, independent of later product edits.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("type IN ('in', 'out')", name="ck_stock_movements_type"),
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_product_date", "product_id", "movement_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(8), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    reason = db.Column(db.String(255), nullable=False)

    # Opaque actor id from the identity collaborator
    recorded_by_id = db.Column(db.Integer, nullable=True, index=True)

    # Set when the movement is the stock side of a sale
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    movement_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} product_id={self.product_id} {self.type} {self.quantity}>"

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.type == "in" else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "type": self.type,
            "quantity": self.quantity,
            "cost_price": self.cost_price,
            "reason": self.reason,
            "recorded_by_id": self.recorded_by_id,
            "sale_id": self.sale_id,
            "movement_date": to_utc_z(self.movement_date),
            "created_at": to_utc_z(self.created_at),
        }
