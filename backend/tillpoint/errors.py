# Overview: Error kinds raised by the POS core; routes translate them to JSON responses.

from __future__ import annotations


class PosError(Exception):
    """Base class for POS operation errors."""

    code = "POS_ERROR"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class ValidationError(PosError):
    """400-level input problem."""
    code = "VALIDATION_ERROR"


class OutOfStock(PosError):
    """Adding or incrementing a line would exceed available stock."""
    code = "OUT_OF_STOCK"
    http_status = 409


class PriceBelowFloor(PosError):
    """Negotiated unit price is under the floor for the pricing mode."""
    code = "PRICE_BELOW_FLOOR"


class NegotiationNotAllowed(PosError):
    """Per-line negotiation is refused for the current pricing mode."""
    code = "NEGOTIATION_NOT_ALLOWED"


class InsufficientPayment(PosError):
    code = "INSUFFICIENT_PAYMENT"


class EmptyCart(PosError):
    code = "EMPTY_CART"


class HoldConflict(PosError):
    """Resuming a held sale would discard a non-empty cart."""
    code = "HOLD_CONFLICT"
    http_status = 409


class EntityNotFound(PosError):
    code = "NOT_FOUND"
    http_status = 404


class PersistenceFailure(PosError):
    """
    The record store rejected a write or read.

    For checkout, details["step"] names the step that failed ("sale_write" or
    "stock_write") so a partially applied sale can be reconciled by hand.
    """
    code = "PERSISTENCE_FAILURE"
    http_status = 503
