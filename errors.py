"""
Error taxonomy for the storefront API.

Every domain failure is a StoreError carrying the HTTP status it maps to.
main.create_app registers the handlers that turn these into the response
envelope {"success": false, "message": ..., "error": ...}.
"""
from typing import List, Optional


class StoreError(Exception):
    status_code = 500
    error = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_envelope(self) -> dict:
        return {"success": False, "message": self.message, "error": self.error}


class ValidationError(StoreError):
    status_code = 400
    error = "ValidationError"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []

    def to_envelope(self) -> dict:
        body = super().to_envelope()
        if self.fields:
            body["fields"] = self.fields
        return body


class AuthenticationError(StoreError):
    status_code = 401
    error = "AuthenticationError"


class AuthorizationError(StoreError):
    status_code = 403
    error = "AuthorizationError"


class NotFoundError(StoreError):
    status_code = 404
    error = "NotFoundError"


class ProductNotFoundError(NotFoundError):
    error = "ProductNotFoundError"

    def __init__(self, product: str):
        super().__init__(f"Product {product} not found")
        self.product = product


class ConflictError(StoreError):
    status_code = 409
    error = "ConflictError"


class EmptyCartError(StoreError):
    status_code = 400
    error = "EmptyCartError"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientStockError(StoreError):
    status_code = 400
    error = "InsufficientStockError"

    def __init__(self, product: str, available: int):
        super().__init__(f"Insufficient stock for {product}. Available: {available}")
        self.product = product
        self.available = available

    def to_envelope(self) -> dict:
        body = super().to_envelope()
        body["available"] = self.available
        return body


class InternalError(StoreError):
    status_code = 500
    error = "InternalError"
