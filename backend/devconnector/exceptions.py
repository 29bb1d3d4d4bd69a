"""
DevConnector Backend — Custom Exception Hierarchy
===================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and the auth dependency; caught by global handlers.

Exception Hierarchy:
    DevConnectorError (base)
    ├── ValidationError       → 400 Bad Request (itemized field errors)
    ├── AuthenticationError   → 401 Unauthorized (missing or bad token)
    ├── AuthorizationError    → 401 Unauthorized (not the owner)
    ├── NotFoundError         → 404 Not Found
    └── StoreError            → 500 Internal Server Error (details logged only)
"""

from typing import Any, Dict, List, Optional


class DevConnectorError(Exception):
    """
    Base exception for all DevConnector application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DevConnectorError):
    """
    Raised when client input fails validation.

    HTTP: 400 Bad Request

    Each entry in `errors` describes one offending field:
        {"msg": "Text is required.", "param": "text", "location": "body"}
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        location: str = "body",
        errors: Optional[List[Dict[str, Any]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        if errors is None:
            errors = [{"msg": message, "param": field, "location": location}] if field else []
        self.errors = errors


class AuthenticationError(DevConnectorError):
    """
    Raised when a request carries no token, or a token that does not verify.

    HTTP: 401 Unauthorized
    """

    def __init__(
        self,
        message: str = "No token, authorization denied.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(DevConnectorError):
    """
    Raised when an authenticated user acts on a record they do not own.

    HTTP: 401 Unauthorized (kept at 401 for client compatibility)
    """

    def __init__(
        self,
        message: str = "User not authorized.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(DevConnectorError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found

    Malformed identifiers are reported as not found too: from the caller's
    point of view there is no record behind an id that cannot exist.
    """

    def __init__(
        self,
        message: str = "The requested resource was not found.",
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class StoreError(DevConnectorError):
    """
    Raised when the post store fails unexpectedly.

    HTTP: 500 Internal Server Error

    The message returned to the client is always generic. The underlying
    SQLAlchemy error is kept in `context` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "Server error.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
