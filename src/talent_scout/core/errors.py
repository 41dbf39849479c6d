"""
Error taxonomy for Talent Scout.

Every failure surfaced by the service layer is a ScoutError subclass that
carries a human-readable message, the underlying error code (backend code or
HTTP status), the HTTP status used by the API layer, and the original
exception for diagnostics.
"""

from typing import Any


class ScoutError(Exception):
    """Base exception for Talent Scout errors."""

    default_code = "SCOUT_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Any = None,
        status_code: int | None = None,
        original: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.original = original

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, code={self.code!r})"


class AuthenticationError(ScoutError):
    """Credentials or session rejected by the backend (401). Never retried."""

    default_code = "UNAUTHORIZED"
    status_code = 401


class ValidationError(ScoutError):
    """Input rejected as unprocessable (422). Never retried."""

    default_code = "VALIDATION_ERROR"
    status_code = 422


class TransientError(ScoutError):
    """Recoverable failure: timeouts, 5xx responses, connectivity."""

    default_code = "TRANSIENT_ERROR"
    status_code = 503


class ExhaustedRetriesError(ScoutError):
    """All attempts consumed. `original` is the last TransientError."""

    default_code = "RETRIES_EXHAUSTED"
    status_code = 503


class RetryCancelledError(ScoutError):
    """The caller abandoned a retry sequence before it finished."""

    default_code = "RETRY_CANCELLED"
    status_code = 499


class InvalidConfigurationError(ScoutError):
    """Programming or configuration error, e.g. an empty skill attribute set."""

    default_code = "INVALID_CONFIGURATION"
    status_code = 500


class NotFoundError(ScoutError):
    """Requested row does not exist."""

    default_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: Any, code: Any = None):
        super().__init__(f"{resource} not found: {identifier}", code=code)
        self.resource = resource
        self.identifier = identifier


class PermissionDeniedError(ScoutError):
    """Signed in, but the account's role may not do this (403)."""

    default_code = "FORBIDDEN"
    status_code = 403
