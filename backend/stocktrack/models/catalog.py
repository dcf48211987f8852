from __future__ import annotations

from ..extensions import db
from stocktrack.time_utils import to_utc_z


class ProductType(db.Model):
    """
    Grouping used by the reporting engine.

    Never hard-deleted while a Product references it; the delete path in
    catalog_service checks for dependents before removing the row.
    """
    __tablename__ = "product_types"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductType id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data plus the cached on-hand quantity.

    qty_in_stock is a projection of the StockMovement ledger:
    SUM(in) - SUM(out) for this product. Only stock_service writes it, and
    always in the same transaction that appends the matching movement.

    cost_price is the last-in cost basis (not a weighted average). Historical
    cost lives on StockMovement.cost_price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("qty_in_stock >= 0", name="ck_products_qty_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost_price >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_type_name", "product_type_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_type_id = db.Column(db.Integer, db.ForeignKey("product_types.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    # Optional, unique when present (NULLs do not collide)
    sku = db.Column(db.String(64), nullable=True, unique=True)

    price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False)
    qty_in_stock = db.Column(db.Integer, nullable=False, default=0)

    size = db.Column(db.String(64), nullable=True, index=True)
    color = db.Column(db.String(64), nullable=True, index=True)
    other_attributes = db.Column(db.Text, nullable=True)

    # Optimistic lock: concurrent writers of the same row raise StaleDataError
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product_type = db.relationship("ProductType", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} qty={self.qty_in_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_type_id": self.product_type_id,
            "product_type": self.product_type.name if self.product_type else None,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "price": self.price,
            "cost_price": self.cost_price,
            "qty_in_stock": self.qty_in_stock,
            "size": self.size,
            "color": self.color,
            "other_attributes": self.other_attributes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
