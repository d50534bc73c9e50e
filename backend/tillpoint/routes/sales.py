# Overview: Flask API routes for committed sales: history, edit and delete with stock reconciliation.

# backend/tillpoint/routes/sales.py

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_cashier
from ..errors import PosError
from ..services import reconciliation_service
from ..validation import parse_sale_items, require_json_object


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error(e: PosError):
    return jsonify(e.to_dict()), e.http_status


@sales_bp.get("/")
def list_sales_route():
    """Sale history, newest first."""
    sales = reconciliation_service.list_sales()
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = reconciliation_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except PosError as e:
        return _error(e)


@sales_bp.put("/<int:sale_id>")
@require_cashier
def update_sale_route(sale_id: int):
    """
    Replace a sale's items.

    Stock for the original items is restored, the edited items are taken
    out of stock again and totals are recomputed.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        items = parse_sale_items(data.get("items"))
        sale, result = reconciliation_service.update_sale(sale_id, items, user=g.cashier)
        return jsonify({"sale": sale.to_dict(), "reconciliation": result.to_dict()}), 200
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_cashier
def delete_sale_route(sale_id: int):
    try:
        result = reconciliation_service.delete_sale(sale_id, user=g.cashier)
        return jsonify({"reconciliation": result.to_dict()}), 200
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/")
@require_cashier
def clear_sales_route():
    """Delete the whole sale history. Stock is not restored."""
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true", "code": "VALIDATION_ERROR"}), 400
    try:
        removed = reconciliation_service.clear_sales_history()
        return jsonify({"removed": removed}), 200
    except PosError as e:
        return _error(e)
