# Overview: Error taxonomy shared by services and routes.

"""
Domain errors.

Every error carries a human-readable message, an optional details dict that is
returned to the caller verbatim, and the HTTP status the routes map it to.

- InvalidRequest: malformed or contradictory input (400, no retry implied)
- NotFound: reference does not resolve within the caller's tenant (404)
- InsufficientStock: sale would drive a product's stock negative (400)
- Conflict: uniqueness or referenced-record rule (409)
- AuthenticationError: missing/invalid credentials or session (401)
- StoreUnavailable: transient persistence failure, nothing was committed (503)
"""

from __future__ import annotations


class StockbookError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(StockbookError):
    status_code = 400


class NotFound(StockbookError):
    status_code = 404


class Conflict(StockbookError):
    status_code = 409


class AuthenticationError(StockbookError):
    status_code = 401


class InsufficientStock(StockbookError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str | None, available: int, required: int):
        label = product_name if product_name is not None else f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product: {label}. Available: {available}, Required: {required}",
            details={
                "productId": product_id,
                "productName": product_name,
                "available": available,
                "required": required,
            },
        )
        self.product_id = product_id
        self.available = available
        self.required = required


class StoreUnavailable(StockbookError):
    """The store could not complete the unit of work; nothing was committed."""

    status_code = 503

    def __init__(self, message: str = "Storage temporarily unavailable, please retry"):
        super().__init__(message)
