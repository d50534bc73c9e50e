# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

CASHIER_HEADER = "X-Cashier"


def require_cashier(f):
    """
    Require a cashier identity on the request.

    Authentication is handled upstream; this only establishes who is acting:
    - g.cashier: the value of the X-Cashier header

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        cashier = (request.headers.get(CASHIER_HEADER) or "").strip()
        if not cashier:
            return jsonify({"error": "Cashier identity required", "code": "AUTH_REQUIRED"}), 401
        g.cashier = cashier
        return f(*args, **kwargs)

    return decorated_function
