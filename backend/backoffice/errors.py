"""
Service-layer exceptions.

Routes translate these into HTTP responses:
- ValidationError        -> 400
- NotFoundError          -> 404
- SaleError              -> 400 (InsufficientStockError / InvalidStateTransition -> 409)
Anything else raised inside a transaction is rolled back and surfaces as a 500.
"""


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""


class NotFoundError(LookupError):
    """Referenced record does not exist (or is soft-deleted)."""


class SaleError(Exception):
    """Raised for sale operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(SaleError):
    """Requested quantity exceeds the stock left across an item's lots."""
    status_code = 409


class InvalidStateTransition(SaleError):
    """Sale is not in a status that allows the requested change."""
    status_code = 409
