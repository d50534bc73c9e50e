# backend/tillpoint/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the app by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///tillpoint.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Business settings consumed by the POS core (read-only to it)
    TAX_ENABLED = _env_flag("TAX_ENABLED", False)
    TAX_PERCENTAGE = os.environ.get("TAX_PERCENTAGE", "18")
    ENABLE_NEGATIVE_STOCK = _env_flag("ENABLE_NEGATIVE_STOCK", False)
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "INV")
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))

    # Held sales live outside the record store; None -> <instance>/held_sales.json
    HELD_SALES_PATH = os.environ.get("HELD_SALES_PATH")

    # Sale write + stock writes in one DB transaction (checkout, edit, delete)
    ATOMIC_STOCK_WRITES = _env_flag("ATOMIC_STOCK_WRITES", True)
    # SELECT ... FOR UPDATE on product reads (SQLite ignores it)
    STOCK_ROW_LOCKING = _env_flag("STOCK_ROW_LOCKING", False)
    # Also write stock log entries for sale-driven stock movement
    LOG_SALE_STOCK_MOVEMENTS = _env_flag("LOG_SALE_STOCK_MOVEMENTS", False)
