# backend/stocktrack/routes/reports.py
"""
Reporting routes. Admin only; every report is read-only.

Money fields serialize as decimal strings.
"""
from flask import Blueprint, request

from ..decorators import require_actor, require_role
from ..services import reporting_service
from ..validation import coerce_int

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daily")
@require_actor
@require_role("admin")
def daily_report_route():
    """Query params: as_of (optional ISO-8601 instant; defaults to now)."""
    return reporting_service.daily_report(request.args.get("as_of") or None), 200


@reports_bp.get("/weekly")
@require_actor
@require_role("admin")
def weekly_report_route():
    return reporting_service.weekly_report(request.args.get("as_of") or None), 200


@reports_bp.get("/product-types/<int:product_type_id>/profit")
@require_actor
@require_role("admin")
def product_type_profit_route(product_type_id: int):
    return reporting_service.product_type_profit_report(product_type_id), 200


@reports_bp.get("/inventory-value")
@require_actor
@require_role("admin")
def inventory_value_route():
    return reporting_service.inventory_value_report(), 200


@reports_bp.get("/sales-performance")
@require_actor
@require_role("admin")
def sales_performance_route():
    """Query params: start_date, end_date (required), product_type_id (optional)."""
    product_type_id = request.args.get("product_type_id")
    return reporting_service.sales_performance_report(
        request.args.get("start_date"),
        request.args.get("end_date"),
        product_type_id=coerce_int("product_type_id", product_type_id) if product_type_id else None,
    ), 200


@reports_bp.get("/products/<int:product_id>/profit-analysis")
@require_actor
@require_role("admin")
def product_profit_analysis_route(product_id: int):
    return reporting_service.product_profit_analysis(product_id), 200
