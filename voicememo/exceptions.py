"""
Voice Memo Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions, one per outcome an operation can end in.
How:   Each exception carries a user-safe message, an optional context dict
       (logged, never returned) and the HTTP status the transport layer maps
       it to. Services raise them; handlers registered in main.py turn them
       into JSON (or plain text for generation endpoints).
Who:   Raised by services, security helpers and the request pipeline.

Exception Hierarchy:
    VoiceMemoError (base)
    ├── ValidationError              → 400 Bad Request
    ├── UnauthorizedError            → 401 Unauthorized
    │   └── InvalidTokenError          (bad signature, malformed, expired)
    ├── ForbiddenError               → 403 Forbidden
    ├── NotFoundError                → 404 Not Found
    ├── ConflictError                → 409 Conflict
    ├── UpstreamError                → 502 Bad Gateway
    │   └── ResponseShapeError         (success status, unexpected body)
    ├── EncryptionError              → 500 Internal Server Error
    ├── DecryptionError              → 500 Internal Server Error
    │   ├── DecodeError                (ciphertext token is not base64)
    │   ├── MalformedPayloadError      (shorter than the nonce)
    │   ├── AuthenticationFailedError  (GCM tag check failed)
    │   └── EncodingError              (plaintext is not UTF-8)
    └── DatabaseError                → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class VoiceMemoError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(VoiceMemoError):
    """
    Raised when client input fails a business rule.

    When:    Empty title/duration, oversized audio.
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

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


class UnauthorizedError(VoiceMemoError):
    """
    Raised when the caller's identity cannot be established.

    When:    Missing bearer token, unusable subject claim, wrong password.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Not authenticated",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(UnauthorizedError):
    """
    Raised by the token codec for any verification failure.

    Signature mismatch, malformed structure and expiry all produce the same
    message; the cause is kept in context for server-side logs only.
    """

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(VoiceMemoError):
    """
    Raised when a caller names a resource it does not own.

    When:    save_memo with an explicit id belonging to another user.
    HTTP:    403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(VoiceMemoError):
    """
    Raised when a requested resource does not exist for this caller.

    Memos owned by somebody else are reported through this same exception,
    so existence is never revealed across users.
    HTTP:    404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(VoiceMemoError):
    """
    Raised when a create would violate a uniqueness rule.

    When:    Signup with an email that is already registered.
    HTTP:    409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamError(VoiceMemoError):
    """
    Raised when the generation endpoint fails.

    The upstream response body is part of the message verbatim; callers
    see exactly what the provider said.
    HTTP:    502 Bad Gateway
    """

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str = "Generation service request failed",
        status: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status is not None:
            ctx["upstream_status"] = status
        super().__init__(message=message, context=ctx)
        self.status = status


class ResponseShapeError(UpstreamError):
    """
    Raised when a successful upstream response lacks
    candidates[0].content.parts[0].text.

    Attributes:
        raw: The full response text, kept for diagnostics.
    """

    def __init__(self, raw: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=f"Failed to parse Gemini API response. Full response: {raw}",
            context=context,
        )
        self.raw = raw


class EncryptionError(VoiceMemoError):
    """
    Raised when a plaintext credential cannot be encrypted.

    A failed encryption aborts the whole save before any row is written.
    HTTP:    500 Internal Server Error
    """

    status_code = 500
    error_code = "encryption_error"

    def __init__(
        self,
        message: str = "Failed to encrypt API key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DecryptionError(VoiceMemoError):
    """Base for every way a ciphertext token can fail to decrypt."""

    status_code = 500
    error_code = "decryption_error"

    def __init__(
        self,
        message: str = "Failed to decrypt API key",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DecodeError(DecryptionError):
    """Ciphertext token is not valid base64."""


class MalformedPayloadError(DecryptionError):
    """Decoded payload is shorter than the nonce."""


class AuthenticationFailedError(DecryptionError):
    """GCM tag check failed: wrong key, corrupted or truncated data."""


class EncodingError(DecryptionError):
    """Recovered bytes are not valid UTF-8."""


class DatabaseError(VoiceMemoError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; the driver error
    is logged server-side only.
    HTTP:    500 Internal Server Error
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
