# Overview: Read-only snapshot of the business settings consumed by the POS core.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from flask import current_app


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_decimal(value: Any, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{key} must be numeric, got {value!r}")


@dataclass(frozen=True)
class PosSettings:
    tax_enabled: bool = False
    tax_percentage: Decimal = Decimal("18")
    enable_negative_stock: bool = False
    invoice_prefix: str = "INV"
    low_stock_threshold: int = 5
    atomic_stock_writes: bool = True
    stock_row_locking: bool = False
    log_sale_stock_movements: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PosSettings":
        # Unset or zero percentage falls back to 18%
        tax_percentage = config.get("TAX_PERCENTAGE")
        if tax_percentage in (None, "", 0, "0"):
            tax_percentage = "18"

        return cls(
            tax_enabled=_as_bool(config.get("TAX_ENABLED", False)),
            tax_percentage=_as_decimal(tax_percentage, "TAX_PERCENTAGE"),
            enable_negative_stock=_as_bool(config.get("ENABLE_NEGATIVE_STOCK", False)),
            invoice_prefix=(config.get("INVOICE_PREFIX") or "INV").strip(),
            low_stock_threshold=int(config.get("LOW_STOCK_THRESHOLD", 5)),
            atomic_stock_writes=_as_bool(config.get("ATOMIC_STOCK_WRITES", True)),
            stock_row_locking=_as_bool(config.get("STOCK_ROW_LOCKING", False)),
            log_sale_stock_movements=_as_bool(config.get("LOG_SALE_STOCK_MOVEMENTS", False)),
        )


def current_settings() -> PosSettings:
    """Settings for the active Flask app."""
    return PosSettings.from_config(current_app.config)
