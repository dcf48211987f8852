# Overview: Service-layer operations for reporting; read-only aggregation over sales and products.

"""
Reporting Engine.

- Financial aggregates only ever include status='approved' sales. The daily
  report's low-stock section is the one status-independent part.
- Money is summed as Decimal in Python rather than with SQL SUM(), which
  SQLite evaluates in floating point. Only the profit margin is rounded
  (2 places) here; totals keep the scale of the stored columns.
- Day buckets are calendar days in REPORT_TIMEZONE.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..errors import InvalidRangeError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductType, Sale, SALE_APPROVED
from stocktrack.time_utils import (
    day_window,
    get_zone,
    local_date,
    parse_range_bound,
    to_utc_naive,
    to_utc_z,
    utcnow,
    week_window,
)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
RECENT_SALES_LIMIT = 5


def profit_margin(total_profit: Decimal, total_sales: Decimal) -> Decimal:
    """totalProfit / totalSales * 100, rounded to cents; 0 when there are no sales."""
    if not total_sales:
        return ZERO
    return (Decimal(total_profit) / Decimal(total_sales) * 100).quantize(CENT, rounding=ROUND_HALF_UP)


def _report_zone(zone_name: str | None = None):
    return get_zone(zone_name or current_app.config.get("REPORT_TIMEZONE", "UTC"))


def _as_of(as_of, zone) -> datetime:
    """UTC-naive instant for as_of; naive values are wall-clock time in `zone`."""
    if as_of is None:
        return utcnow()
    if isinstance(as_of, str):
        try:
            as_of = datetime.fromisoformat(as_of.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("as_of must be an ISO-8601 datetime")
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=zone)
    return to_utc_naive(as_of)


def _approved_sales_between(start: datetime, end: datetime):
    """Approved sales with start <= sales_date < end, oldest first."""
    return (
        db.session.query(Sale)
        .filter(
            Sale.status == SALE_APPROVED,
            Sale.sales_date >= start,
            Sale.sales_date < end,
        )
        .order_by(Sale.sales_date.asc(), Sale.id.asc())
        .all()
    )


def _totals(sales) -> dict:
    total_sales = sum((s.total_price for s in sales), ZERO)
    total_profit = sum((s.profit for s in sales), ZERO)
    return {
        "sales_count": len(sales),
        "total_sales": total_sales,
        "total_profit": total_profit,
        "items_sold": sum(s.qty_sold for s in sales),
    }


def _group_by_day(sales, zone) -> list[dict]:
    buckets: dict = {}
    for sale in sales:
        day = local_date(sale.sales_date, zone)
        bucket = buckets.setdefault(
            day,
            {
                "date": day.isoformat(),
                "sales_count": 0,
                "total_sales": ZERO,
                "total_profit": ZERO,
                "items_sold": 0,
            },
        )
        bucket["sales_count"] += 1
        bucket["total_sales"] += sale.total_price
        bucket["total_profit"] += sale.profit
        bucket["items_sold"] += sale.qty_sold
    return [buckets[day] for day in sorted(buckets)]


def daily_report(
    as_of=None,
    *,
    zone_name: str | None = None,
    low_stock_threshold: int | None = None,
) -> dict:
    zone = _report_zone(zone_name)
    day, start, end = day_window(_as_of(as_of, zone), zone)
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    sales = _approved_sales_between(start, end)
    totals = _totals(sales)

    low_stock = (
        db.session.query(Product)
        .filter(Product.qty_in_stock < low_stock_threshold)
        .order_by(Product.qty_in_stock.asc(), Product.name.asc())
        .all()
    )

    return {
        "date": day.isoformat(),
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "sales_count": totals["sales_count"],
        "total_sales": totals["total_sales"],
        "total_profit": totals["total_profit"],
        "sales": [s.to_dict() for s in sales],
        "low_stock_threshold": low_stock_threshold,
        "low_stock_products": [p.to_dict() for p in low_stock],
        "low_stock_count": len(low_stock),
    }


def weekly_report(as_of=None, *, zone_name: str | None = None) -> dict:
    zone = _report_zone(zone_name)
    first, last, start, end = week_window(_as_of(as_of, zone), zone)

    sales = _approved_sales_between(start, end)
    totals = _totals(sales)

    return {
        "start_date": first.isoformat(),
        "end_date": last.isoformat(),
        "sales_count": totals["sales_count"],
        "total_sales": totals["total_sales"],
        "total_profit": totals["total_profit"],
        "daily_breakdown": _group_by_day(sales, zone),
    }


def product_type_profit_report(product_type_id: int) -> dict:
    """
    Per-product approved-sales totals for one product type.

    Only products with at least one approved sale are listed, highest profit
    first; product_count still counts every product of the type. A type with
    no sales yields zero totals and an empty list.
    """
    product_type = db.session.get(ProductType, product_type_id)
    if product_type is None:
        raise NotFoundError("product_type", product_type_id)

    products = (
        db.session.query(Product)
        .filter(Product.product_type_id == product_type.id)
        .order_by(Product.name.asc())
        .all()
    )
    product_ids = [p.id for p in products]

    sales = []
    if product_ids:
        sales = (
            db.session.query(Sale)
            .filter(Sale.product_id.in_(product_ids), Sale.status == SALE_APPROVED)
            .all()
        )

    by_product: dict[int, list[Sale]] = {}
    for sale in sales:
        by_product.setdefault(sale.product_id, []).append(sale)

    rows = []
    for product in products:
        product_sales = by_product.get(product.id)
        if not product_sales:
            continue
        totals = _totals(product_sales)
        rows.append(
            {
                "id": product.id,
                "name": product.name,
                "sku": product.sku,
                "current_stock": product.qty_in_stock,
                "current_stock_value": product.qty_in_stock * product.cost_price,
                "sales_count": totals["sales_count"],
                "quantity_sold": totals["items_sold"],
                "total_sales": totals["total_sales"],
                "total_profit": totals["total_profit"],
                "profit_margin": profit_margin(totals["total_profit"], totals["total_sales"]),
            }
        )

    rows.sort(key=lambda row: row["total_profit"], reverse=True)
    totals = _totals(sales)

    return {
        "product_type_id": product_type.id,
        "product_type": product_type.name,
        "product_count": len(products),
        "sales_count": totals["sales_count"],
        "total_sales": totals["total_sales"],
        "total_profit": totals["total_profit"],
        "total_quantity_sold": totals["items_sold"],
        "profit_margin": profit_margin(totals["total_profit"], totals["total_sales"]),
        "products": rows,
    }


def inventory_value_report() -> dict:
    """Stock value at cost and potential profit at list price, per product type."""
    product_types = db.session.query(ProductType).order_by(ProductType.name.asc()).all()
    products = (
        db.session.query(Product)
        .filter(Product.qty_in_stock > 0)
        .order_by(Product.name.asc())
        .all()
    )

    by_type: dict[int, list[Product]] = {}
    for product in products:
        by_type.setdefault(product.product_type_id, []).append(product)

    inventory_by_type = []
    for product_type in product_types:
        rows = []
        for p in by_type.get(product_type.id, []):
            rows.append(
                {
                    "id": p.id,
                    "name": p.name,
                    "sku": p.sku,
                    "qty_in_stock": p.qty_in_stock,
                    "cost_price": p.cost_price,
                    "price": p.price,
                    "inventory_value": p.qty_in_stock * p.cost_price,
                    "potential_profit": p.qty_in_stock * (p.price - p.cost_price),
                }
            )
        inventory_by_type.append(
            {
                "product_type_id": product_type.id,
                "product_type_name": product_type.name,
                "product_count": len(rows),
                "total_items": sum(r["qty_in_stock"] for r in rows),
                "inventory_value": sum((r["inventory_value"] for r in rows), ZERO),
                "potential_profit": sum((r["potential_profit"] for r in rows), ZERO),
                "products": rows,
            }
        )

    return {
        "total_inventory_value": sum((t["inventory_value"] for t in inventory_by_type), ZERO),
        "total_potential_profit": sum((t["potential_profit"] for t in inventory_by_type), ZERO),
        "product_type_count": len(product_types),
        "inventory_by_type": inventory_by_type,
    }


def sales_performance_report(
    start_date,
    end_date,
    product_type_id: int | None = None,
    *,
    zone_name: str | None = None,
) -> dict:
    """
    Approved sales in an inclusive range, grouped by day and by product type.

    Bare dates cover whole local days (end date included through its last
    instant). Raises InvalidRangeError when a bound is missing, unparsable,
    or start is after end.
    """
    if not start_date or not end_date:
        raise InvalidRangeError("Start date and end date are required")

    zone = _report_zone(zone_name)
    try:
        start = parse_range_bound(start_date, zone, end=False)
        end = parse_range_bound(end_date, zone, end=True)
    except ValueError:
        raise InvalidRangeError(
            "Dates must be ISO-8601",
            details={"start_date": str(start_date), "end_date": str(end_date)},
        )
    if start >= end:
        raise InvalidRangeError(
            "Start date must not be after end date",
            details={"start_date": str(start_date), "end_date": str(end_date)},
        )

    q = (
        db.session.query(Sale)
        .join(Product, Sale.product_id == Product.id)
        .filter(
            Sale.status == SALE_APPROVED,
            Sale.sales_date >= start,
            Sale.sales_date < end,
        )
    )
    if product_type_id is not None:
        if db.session.get(ProductType, product_type_id) is None:
            raise NotFoundError("product_type", product_type_id)
        q = q.filter(Product.product_type_id == product_type_id)

    sales = q.order_by(Sale.sales_date.asc(), Sale.id.asc()).all()

    daily = _group_by_day(sales, zone)
    for bucket in daily:
        bucket["profit_margin"] = profit_margin(bucket["total_profit"], bucket["total_sales"])

    by_type: "OrderedDict[int, dict]" = OrderedDict()
    for sale in sales:
        product_type = sale.product.product_type
        group = by_type.setdefault(
            product_type.id,
            {
                "id": product_type.id,
                "name": product_type.name,
                "sales_count": 0,
                "total_sales": ZERO,
                "total_profit": ZERO,
                "items_sold": 0,
            },
        )
        group["sales_count"] += 1
        group["total_sales"] += sale.total_price
        group["total_profit"] += sale.profit
        group["items_sold"] += sale.qty_sold

    type_breakdown = sorted(by_type.values(), key=lambda g: g["name"])
    for group in type_breakdown:
        group["profit_margin"] = profit_margin(group["total_profit"], group["total_sales"])

    totals = _totals(sales)
    return {
        "period": {
            "start_date": str(start_date),
            "end_date": str(end_date),
            "start": to_utc_z(start),
            "end": to_utc_z(end),
        },
        "summary": {
            "sales_count": totals["sales_count"],
            "total_sales": totals["total_sales"],
            "total_profit": totals["total_profit"],
            "total_items_sold": totals["items_sold"],
            "profit_margin": profit_margin(totals["total_profit"], totals["total_sales"]),
        },
        "daily_breakdown": daily,
        "product_type_breakdown": type_breakdown,
    }


def product_profit_analysis(product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)

    sales = (
        db.session.query(Sale)
        .filter(Sale.product_id == product.id, Sale.status == SALE_APPROVED)
        .order_by(Sale.sales_date.desc(), Sale.id.desc())
        .all()
    )
    totals = _totals(sales)

    return {
        "product": {
            "id": product.id,
            "name": product.name,
            "product_type": product.product_type.name,
            "sku": product.sku,
            "current_price": product.price,
            "current_cost_price": product.cost_price,
            "current_stock": product.qty_in_stock,
        },
        "sales": {
            "total_sales_count": totals["sales_count"],
            "total_quantity_sold": totals["items_sold"],
            "total_sales_value": totals["total_sales"],
            "total_profit": totals["total_profit"],
            "profit_margin": profit_margin(totals["total_profit"], totals["total_sales"]),
        },
        "inventory": {
            "current_stock_value": product.qty_in_stock * product.cost_price,
            "potential_profit": product.qty_in_stock * (product.price - product.cost_price),
        },
        "recent_sales": [s.to_dict() for s in sales[:RECENT_SALES_LIMIT]],
    }
