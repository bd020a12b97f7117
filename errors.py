"""Exceptions raised by the shop services and rendered by the HTTP layer."""
from typing import Any, Dict, List, Optional


class ShopError(Exception):
    """Base exception for all shop errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        """Additional keys merged into the JSON error body."""
        return {}


class ValidationError(ShopError):
    """Raised when input is malformed or required fields are missing."""

    status_code = 400

    def __init__(
        self,
        message: str,
        fields: Optional[Dict[str, str]] = None,
        missing_fields: Optional[List[str]] = None,
    ):
        self.fields = fields or {}
        self.missing_fields = missing_fields or []
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if self.missing_fields:
            body["missingFields"] = self.missing_fields
        if self.fields:
            body["errors"] = self.fields
        return body


class BadRequest(ShopError):
    status_code = 400


class InvalidStatus(ShopError):
    """Raised when an order status is outside the allowed set."""

    status_code = 400

    def __init__(self, status: Any, allowed: List[str]):
        self.status = status
        self.allowed = allowed
        if not status:
            msg = "Status is required"
        else:
            msg = f"Invalid status. Must be one of: {', '.join(allowed)}"
        super().__init__(msg)


class NotFound(ShopError):
    status_code = 404


class Unauthorized(ShopError):
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class InvalidCredentials(Unauthorized):
    def __init__(self):
        super().__init__("Invalid username or password")


class DuplicateKey(ShopError):
    """Raised when a write collides with a unique index."""

    # surfaced as a plain 400 to the storefront client
    status_code = 400

    def __init__(self, message: str, detail: str):
        self.detail = detail
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"error": self.detail}


class SessionError(ShopError):
    """Raised when the session store cannot complete an operation."""

    status_code = 500


class InternalError(ShopError):
    status_code = 500
