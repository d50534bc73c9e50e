# Overview: Flask API routes for a POS terminal: cart, pricing mode, checkout and held sales.

# backend/tillpoint/routes/pos.py

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_cashier
from ..errors import PosError
from ..services.terminal_service import get_terminal
from ..validation import (
    parse_decimal,
    parse_int,
    require_fields,
    require_json_object,
)


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _error(e: PosError):
    return jsonify(e.to_dict()), e.http_status


def _state(terminal, status: int = 200, **extra):
    body = {"terminal": terminal.to_dict()}
    body.update(extra)
    return jsonify(body), status


@pos_bp.get("/<terminal_id>")
def get_terminal_route(terminal_id: str):
    """Current cart, totals and checkout draft for a terminal."""
    try:
        return _state(get_terminal(terminal_id))
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to load terminal")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/cart/lines")
@require_cashier
def add_to_cart_route(terminal_id: str):
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "product_id")
        terminal = get_terminal(terminal_id)
        line = terminal.add_to_cart(parse_int(data["product_id"], "product_id", minimum=1))
        return _state(terminal, 201, line=line.to_dict())
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to add cart line")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/cart/lines/<int:product_id>/quantity")
@require_cashier
def change_quantity_route(terminal_id: str, product_id: int):
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "delta")
        terminal = get_terminal(terminal_id)
        changed = terminal.change_quantity(product_id, parse_int(data["delta"], "delta"))
        return _state(terminal, changed=changed)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to change line quantity")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.delete("/<terminal_id>/cart/lines/<int:product_id>")
@require_cashier
def remove_line_route(terminal_id: str, product_id: int):
    try:
        terminal = get_terminal(terminal_id)
        removed = terminal.remove_line(product_id)
        return _state(terminal, removed=removed)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to remove cart line")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.delete("/<terminal_id>/cart")
@require_cashier
def clear_cart_route(terminal_id: str):
    try:
        terminal = get_terminal(terminal_id)
        terminal.clear_cart()
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to clear cart")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.put("/<terminal_id>/mode")
@require_cashier
def switch_mode_route(terminal_id: str):
    """Switching the pricing mode re-prices every line and drops negotiation."""
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "mode")
        terminal = get_terminal(terminal_id)
        terminal.switch_pricing_mode(data["mode"])
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to switch pricing mode")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/cart/negotiate")
@require_cashier
def negotiate_line_route(terminal_id: str):
    try:
        data = require_json_object(request.get_json(silent=True))
        require_fields(data, "index", "price", "quantity")
        terminal = get_terminal(terminal_id)
        line = terminal.negotiate_line(
            parse_int(data["index"], "index", minimum=0),
            parse_decimal(data["price"], "price"),
            parse_int(data["quantity"], "quantity", minimum=1),
        )
        return _state(terminal, line=line.to_dict())
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to negotiate line price")
        return jsonify({"error": "Internal server error"}), 500


def _payment_fields(data: dict) -> dict:
    fields = {}
    if "amount_paid" in data:
        fields["amount_paid"] = parse_decimal(data["amount_paid"], "amount_paid")
    if "global_discount_percent" in data:
        fields["global_discount_percent"] = parse_decimal(
            data["global_discount_percent"], "global_discount_percent", maximum=100,
        )
    for key in ("payment_method", "customer_name", "customer_phone"):
        if data.get(key) is not None:
            fields[key] = str(data[key])
    return fields


@pos_bp.post("/<terminal_id>/checkout")
@require_cashier
def open_checkout_route(terminal_id: str):
    try:
        terminal = get_terminal(terminal_id)
        terminal.open_checkout()
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to open checkout")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.patch("/<terminal_id>/checkout")
@require_cashier
def set_payment_route(terminal_id: str):
    try:
        data = require_json_object(request.get_json(silent=True))
        terminal = get_terminal(terminal_id)
        terminal.set_payment(**_payment_fields(data))
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update checkout draft")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.delete("/<terminal_id>/checkout")
@require_cashier
def cancel_checkout_route(terminal_id: str):
    try:
        terminal = get_terminal(terminal_id)
        terminal.cancel_checkout()
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel checkout")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/checkout/commit")
@require_cashier
def commit_route(terminal_id: str):
    """
    Commit the open checkout as a sale.

    Optional body fields update the draft first (same as PATCH /checkout).
    Returns the persisted sale for receipt rendering.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        terminal = get_terminal(terminal_id)
        if data:
            terminal.set_payment(**_payment_fields(data))
        sale = terminal.commit(g.cashier)
        return jsonify({"sale": sale.to_dict(), "terminal": terminal.to_dict()}), 201
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/holds")
@require_cashier
def hold_route(terminal_id: str):
    try:
        data = require_json_object(request.get_json(silent=True))
        terminal = get_terminal(terminal_id)
        held = terminal.hold(note=data.get("note"), customer_label=data.get("customer_label"))
        return _state(terminal, 201, held_sale=held.to_dict())
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to hold sale")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.get("/<terminal_id>/holds")
def list_holds_route(terminal_id: str):
    try:
        terminal = get_terminal(terminal_id)
        held = sorted(terminal.list_holds(), key=lambda h: h.created_at, reverse=True)
        return jsonify({"held_sales": [h.to_dict() for h in held]}), 200
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list held sales")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.post("/<terminal_id>/holds/<held_id>/resume")
@require_cashier
def resume_hold_route(terminal_id: str, held_id: str):
    try:
        data = require_json_object(request.get_json(silent=True))
        terminal = get_terminal(terminal_id)
        held = terminal.resume(held_id, confirm_discard=bool(data.get("confirm_discard")))
        return _state(terminal, held_sale=held.to_dict())
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to resume held sale")
        return jsonify({"error": "Internal server error"}), 500


@pos_bp.delete("/<terminal_id>/holds/<held_id>")
@require_cashier
def discard_hold_route(terminal_id: str, held_id: str):
    try:
        terminal = get_terminal(terminal_id)
        terminal.discard_hold(held_id)
        return _state(terminal)
    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to discard held sale")
        return jsonify({"error": "Internal server error"}), 500
