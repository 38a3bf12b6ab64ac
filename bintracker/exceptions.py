"""
Bin Tracker — Custom Exception Hierarchy
=========================================

What:  Application-specific exceptions mapped to HTTP responses.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and routes; caught by global handlers.

Exception Hierarchy:
    BinTrackerError (base)       → 500 Internal Server Error
    ├── BadRequestError          → 400 Bad Request (unparseable body, oversized upload)
    ├── NotFoundError            → 404 Not Found (missing photo)
    └── BlobStorageError         → 500 Internal Server Error

Unmatched paths and wrong verbs are raised by Starlette's router itself and
answered with plain text by the handler in main.py. Row store faults are not
wrapped: they propagate to the catch-all handler as-is.
"""

from typing import Any, Dict, Optional


class BinTrackerError(Exception):
    """
    Base exception for all Bin Tracker application errors.

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


class BadRequestError(BinTrackerError):
    """
    Raised when the client sent a body we cannot use.

    When:    Metadata body is not a JSON object, fields have the wrong type,
             or a photo upload exceeds the configured size.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "bad_request",
            "message": "Expected JSON body with fields case_code/bin_type/notes",
            "details": {"reason": "invalid_json"}
        }
    """

    def __init__(
        self,
        message: str = "Bad request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BinTrackerError):
    """
    Raised when a requested resource does not exist.

    When:    GET /bin/{id}/photo for an unknown bin, a bin without a photo,
             or a photo key whose blob has gone missing.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        message: str = "The requested resource was not found",
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class BlobStorageError(BinTrackerError):
    """
    Raised when the blob store cannot read or write a payload.

    When:    Disk full, permission denied, or a key resolving outside the
             storage root.
    HTTP:    500 Internal Server Error

    The client only sees the message; paths and OS errors stay in the context
    and are logged server-side.
    """

    def __init__(
        self,
        message: str = "Photo storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
