# Overview: Typed domain errors shared by services and the HTTP boundary.

"""
Every core operation either returns its entity/aggregate or raises exactly one
of these. `kind` is the stable machine-readable identifier clients key on;
`status_code` is only used by the HTTP layer.
"""

from __future__ import annotations


class StockTrackError(Exception):
    """Base class for all domain errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(StockTrackError, ValueError):
    """400-level input problem."""

    kind = "validation_error"
    status_code = 400


class InvalidRangeError(StockTrackError):
    """Report date range missing or malformed."""

    kind = "invalid_range"
    status_code = 400


class PermissionDeniedError(StockTrackError):
    kind = "permission_denied"
    status_code = 403


class NotFoundError(StockTrackError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        label = entity.replace("_", " ").capitalize()
        super().__init__(
            f"{label} not found",
            details={"entity": entity, "id": entity_id},
        )
        self.entity = entity
        self.entity_id = entity_id


class DuplicateError(StockTrackError):
    """Unique constraint violated (type name, SKU)."""

    kind = "duplicate"
    status_code = 409

    def __init__(self, field: str, value, message: str | None = None):
        super().__init__(
            message or f"{field} '{value}' already exists",
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class DuplicateNameError(DuplicateError):
    def __init__(self, value):
        super().__init__("name", value, f"Product type with name '{value}' already exists")


class DuplicateSkuError(DuplicateError):
    def __init__(self, value):
        super().__init__("sku", value, f"Product with SKU '{value}' already exists")


class InsufficientStockError(StockTrackError):
    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, available: int, requested: int):
        super().__init__(
            "Insufficient stock",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class AlreadyFinalizedError(StockTrackError):
    """Transition attempted from a terminal sale status."""

    kind = "already_finalized"
    status_code = 409

    def __init__(self, current_status: str):
        super().__init__(
            f"Sale is already {current_status}",
            details={"current_status": current_status},
        )
        self.current_status = current_status


class HasDependentSalesError(StockTrackError):
    kind = "has_dependent_sales"
    status_code = 409

    def __init__(self, sales_count: int):
        super().__init__(
            "Cannot delete product with associated sales",
            details={"sales_count": sales_count},
        )
        self.sales_count = sales_count


class HasDependentProductsError(StockTrackError):
    kind = "has_dependent_products"
    status_code = 409

    def __init__(self, product_count: int):
        super().__init__(
            "Cannot delete product type while products reference it",
            details={"product_count": product_count},
        )
        self.product_count = product_count


class StorageError(StockTrackError):
    """Persistence failure not anticipated by the domain rules."""

    kind = "storage_error"
    status_code = 503
