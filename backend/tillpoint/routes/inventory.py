# backend/tillpoint/routes/inventory.py
"""
Inventory routes: catalog lookup, manual stock adjustment, purchase receiving
and the stock log.

Every stock change made here appends a stock log entry.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_cashier
from ..errors import PosError
from ..services import inventory_service
from ..services.ledger_service import list_stock_log
from ..validation import (
    parse_int,
    parse_purchase_items,
    require_fields,
    require_json_object,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _error(e: PosError):
    return jsonify(e.to_dict()), e.http_status


@inventory_bp.get("/products")
def list_products_route():
    """Catalog search by name or SKU (?q=)."""
    products = inventory_service.search_products(request.args.get("q"))
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@inventory_bp.get("/low-stock")
def low_stock_route():
    products = inventory_service.low_stock_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@inventory_bp.post("/adjust")
@require_cashier
def adjust_stock_route():
    """Set a product's stock to an absolute quantity."""
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "product_id", "new_quantity")
        product = inventory_service.adjust_stock(
            parse_int(data["product_id"], "product_id", minimum=1),
            parse_int(data["new_quantity"], "new_quantity"),
            user=g.cashier,
            reason=data.get("reason") or "Restock",
            note=data.get("note"),
        )
        return jsonify({"product": product.to_dict()}), 200
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/receive")
@require_cashier
def receive_purchase_route():
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "supplier_name", "items")
        purchase = inventory_service.receive_purchase(
            supplier_name=str(data["supplier_name"]),
            items=parse_purchase_items(data["items"]),
            user=g.cashier,
            invoice_no=data.get("invoice_no"),
            note=data.get("note"),
        )
        return jsonify({"purchase": purchase.to_dict()}), 201
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to receive purchase")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/stock-log")
def stock_log_route():
    product_id = request.args.get("product_id", type=int)
    entries = list_stock_log(product_id)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200
