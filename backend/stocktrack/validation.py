from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from stocktrack.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, Numeric, String, Text, DateTime

from .errors import ValidationError


# Maximum monetary value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")

MOVEMENT_TYPES = {"in", "out"}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted keys that are not model columns (e.g. foreign ids by another name)
    """
    writable_fields: set[str]
    required_on_create: set[str] | None = None
    extra_fields: set[str] | None = None


def _columns_by_key(model) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def coerce_money(key: str, value: Any) -> Decimal:
    """Accept int, Decimal or numeric strings; floats go through str() to avoid binary noise."""
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{key} cannot have more than 2 decimal places")
    return amount


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric before Integer: money columns
    if isinstance(coltype, Numeric):
        return coerce_money(col.key, value)

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    extra = policy.extra_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols and k not in extra:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            patch[k] = raw
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_money(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        amount = patch[key]
        if amount < 0:
            raise ValidationError(f"{key} must be >= 0")
        if amount > MAX_MONEY:
            raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_money(patch, "price")
    _check_money(patch, "cost_price")

    if "qty_in_stock" in patch and patch["qty_in_stock"] is not None:
        if patch["qty_in_stock"] < 0:
            raise ValidationError("qty_in_stock must be >= 0")

    if "sku" in patch and patch["sku"] == "":
        # Empty SKU means "no SKU"; keeps the unique index free of blanks
        patch["sku"] = None


def enforce_rules_stock_movement(patch: dict) -> None:
    movement_type = patch.get("type")
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError("type must be 'in' or 'out'")

    if patch.get("quantity") is None or patch["quantity"] <= 0:
        raise ValidationError("quantity must be > 0")

    if not patch.get("reason"):
        raise ValidationError("reason is required")

    _check_money(patch, "cost_price")
    if movement_type == "out" and patch.get("cost_price") is not None:
        raise ValidationError("cost_price must be omitted for 'out' movements")


def enforce_rules_sale(patch: dict) -> None:
    if patch.get("qty_sold") is None or patch["qty_sold"] <= 0:
        raise ValidationError("qty_sold must be > 0")
