from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError

# Maximum amount accepted from clients; keeps Numeric(14, 2) from overflowing
MAX_AMOUNT = Decimal("999999999999.99")
CENT = Decimal("0.01")


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer parsing: rejects bools, floats, decimals and scientific
    notation so quantities can never be silently truncated.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and parsed < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return parsed


def parse_decimal(value: Any, field: str, *, minimum: Decimal | int | None = 0, maximum=MAX_AMOUNT) -> Decimal:
    """
    Amounts arrive as JSON numbers or strings; floats go through str() first.
    The result is rounded half-up to whole cents.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    try:
        parsed = parsed.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    if minimum is not None and parsed < Decimal(minimum):
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and parsed > Decimal(maximum):
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return parsed


def parse_sale_items(raw: Any) -> list[dict]:
    """Edited sale lines: product_id, quantity, price and optional name/sku/original_price."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    items = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError("each item must be an object", details={"position": position})
        require_fields(entry, "product_id", "quantity", "price")
        item = {
            "product_id": parse_int(entry["product_id"], "product_id", minimum=1),
            "quantity": parse_int(entry["quantity"], "quantity", minimum=1),
            "price": parse_decimal(entry["price"], "price"),
            "name": entry.get("name"),
            "sku": entry.get("sku"),
        }
        if entry.get("original_price") is not None:
            item["original_price"] = parse_decimal(entry["original_price"], "original_price")
        items.append(item)
    return items


def parse_purchase_items(raw: Any) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")
    items = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError("each item must be an object", details={"position": position})
        require_fields(entry, "product_id", "quantity", "unit_cost")
        items.append({
            "product_id": parse_int(entry["product_id"], "product_id", minimum=1),
            "quantity": parse_int(entry["quantity"], "quantity", minimum=1),
            "unit_cost": parse_decimal(entry["unit_cost"], "unit_cost"),
        })
    return items
