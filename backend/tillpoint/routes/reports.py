# Overview: Flask API routes for sales reporting; parses filters and returns JSON aggregates.

from flask import Blueprint, request, jsonify

from ..errors import PosError
from ..services import reporting_service
from ..validation import parse_decimal


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _amounts_to_str(value):
    """Decimals become strings; nested dicts/lists are walked."""
    if isinstance(value, dict):
        return {k: _amounts_to_str(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_amounts_to_str(v) for v in value]
    if hasattr(value, "is_finite"):
        return str(value)
    return value


@reports_bp.get("/sales")
def sales_report_route():
    """
    Query params:
    - start, end: ISO dates (end date is inclusive of the whole day)
    - cashier: cashier name or "All"
    - category: product category or "All"
    - expenses: operating expenses to deduct from profit (All only)
    """
    try:
        expenses = request.args.get("expenses")
        report = reporting_service.build_report(
            start=request.args.get("start"),
            end=request.args.get("end"),
            cashier=request.args.get("cashier") or reporting_service.ALL,
            category=request.args.get("category") or reporting_service.ALL,
            expenses_total=parse_decimal(expenses, "expenses") if expenses else 0,
        )
        return jsonify(_amounts_to_str(report)), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
