"""
Grocery Vision Backend — Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions for the failure kinds a detection
       request can hit.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return the `{"message": "Error", "error": ...}` envelope with the
       matching HTTP status code.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    GroceryVisionError (base)             → 500
    ├── ValidationError                   → 400 Bad Request (client can fix)
    │   └── PayloadTooLargeError          → 413 Payload Too Large
    ├── ImageProcessingError              → 500 Internal Server Error
    └── LLMServiceError                   → 503 Service Unavailable
        └── LLMAuthenticationError        → 401 Unauthorized (bad/missing API key)

Normalization never raises: an unreadable model answer is an empty result,
not an error, so it has no exception type here.
"""

from typing import Any, Dict, Optional


class GroceryVisionError(Exception):
    """
    Base exception for all Grocery Vision application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only where a handler opts in)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GroceryVisionError):
    """
    Raised when the uploaded image fails validation.

    When:    Missing upload, empty file, unsupported extension or content type.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class PayloadTooLargeError(ValidationError):
    """
    Raised when the uploaded image exceeds the configured size ceiling.

    HTTP:    413 Payload Too Large
    """

    status_code = 413

    def __init__(
        self,
        max_size: int,
        actual_size: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        max_mb = max_size / (1024 * 1024)
        message = f"File too large. Maximum size is {max_mb:.0f}MB."
        ctx = context or {}
        ctx["max_size_mb"] = max_mb
        if actual_size is not None:
            ctx["actual_size"] = actual_size
        super().__init__(message=message, field="image", context=ctx)
        self.max_size = max_size


class ImageProcessingError(GroceryVisionError):
    """
    Raised when the server cannot inspect an uploaded image.

    When:    The magic-byte sniffer is unavailable or crashes.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Could not verify file type. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(GroceryVisionError):
    """
    Raised when the Gemini call fails (network, quota, timeout, bad response).

    HTTP:    503 Service Unavailable

    The message carries the underlying SDK error text so the client can show
    what went wrong, e.g. "API Error: 429 Resource has been exhausted".
    """

    status_code = 503

    def __init__(
        self,
        message: str = "AI detection service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class LLMAuthenticationError(LLMServiceError):
    """
    Raised when Gemini rejects our credentials, or none are configured.

    How:     Detected by sniffing the SDK error text for "API key", "403"
             or "authentication" (see GeminiService.classify_error).
    HTTP:    401 Unauthorized
    """

    status_code = 401

    def __init__(
        self,
        details: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if details:
            ctx["details"] = details
        super().__init__(
            message="API key issue. Please check your Gemini API key.",
            context=ctx,
        )
        self.details = details
