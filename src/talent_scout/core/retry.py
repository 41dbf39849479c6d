"""
Resilient call wrapper for backend operations.

Runs a zero-argument async operation with bounded retries and exponential
backoff. Authentication (401 or a rejected password grant), validation
(422) and configuration failures are surfaced immediately; everything else
is treated as transient and retried.

Usage:
    from talent_scout.core.retry import RetryPolicy, with_retry

    profile = await with_retry(
        lambda: backend.select("profiles", filters={"id": eq(user_id)}),
        RetryPolicy(max_attempts=5, base_delay=0.5),
    )
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from .errors import (
    AuthenticationError,
    ExhaustedRetriesError,
    InvalidConfigurationError,
    RetryCancelledError,
    TransientError,
    ValidationError,
)

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
Sleep = Callable[[float], Awaitable[Any]]

UNAUTHORIZED = 401
UNPROCESSABLE_ENTITY = 422

# Auth error codes for rejected credentials, sent with HTTP 400
AUTH_REJECTION_CODES = frozenset({"invalid_grant", "invalid_credentials"})


class ErrorKind(str, Enum):
    """How a failure is handled by the wrapper."""

    authentication = "authentication"
    validation = "validation"
    transient = "transient"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for a single call.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Seconds to wait before the first retry
        backoff_multiplier: Factor applied to the delay per additional attempt
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise InvalidConfigurationError(
                f"max_attempts must be positive, got {self.max_attempts}"
            )
        if self.base_delay < 0:
            raise InvalidConfigurationError(
                f"base_delay must not be negative, got {self.base_delay}"
            )
        if self.backoff_multiplier < 1:
            raise InvalidConfigurationError(
                f"backoff_multiplier must be at least 1, got {self.backoff_multiplier}"
            )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            backoff_multiplier=settings.retry_backoff_multiplier,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the 0-indexed `attempt` fails."""
        return self.base_delay * self.backoff_multiplier**attempt


# =============================================================================
# Classification
# =============================================================================


def error_status(exc: BaseException) -> Any:
    """
    Status code carried by a failure, or None for network-level errors.

    Looks at `status` then `status_code`, then an attached httpx response,
    then the error's own `code`.
    """
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if value is not None:
            return value

    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if value is not None:
            return value

    return getattr(exc, "code", None)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a failure to authentication, validation or transient."""
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in AUTH_REJECTION_CODES:
        return ErrorKind.authentication
    status = str(error_status(exc))
    if status == str(UNAUTHORIZED):
        return ErrorKind.authentication
    if status == str(UNPROCESSABLE_ENTITY):
        return ErrorKind.validation
    return ErrorKind.transient


def _describe(exc: BaseException) -> tuple[str, Any]:
    message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
    code = getattr(exc, "code", None)
    if code is None:
        code = error_status(exc)
    return message, code


# =============================================================================
# Wrapper
# =============================================================================


async def _backoff(delay: float, cancel_event: asyncio.Event | None, sleep: Sleep) -> bool:
    """Wait `delay` seconds. Returns True if cancelled before the delay elapsed."""
    if cancel_event is None:
        await sleep(delay)
        return False

    sleeper = asyncio.ensure_future(sleep(delay))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
    return waiter in done


async def with_retry(
    operation: Operation[T],
    policy: RetryPolicy | None = None,
    *,
    cancel_event: asyncio.Event | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Execute `operation`, retrying transient failures.

    Args:
        operation: Zero-argument callable returning an awaitable
        policy: Retry configuration (default: 3 attempts, 1s, x2)
        cancel_event: Set it to abandon the sequence; an in-flight backoff
            wait ends immediately
        sleep: Awaitable delay function

    Returns:
        The result of the first successful attempt

    Raises:
        AuthenticationError: Operation failed with a 401-equivalent code
        ValidationError: Operation failed with a 422-equivalent code
        ExhaustedRetriesError: Every attempt failed transiently
        RetryCancelledError: `cancel_event` was set before success
        InvalidConfigurationError: Raised by the operation; passed through
            on the first attempt
    """
    policy = policy or RetryPolicy()
    last_error: TransientError | None = None

    for attempt in range(policy.max_attempts):
        if cancel_event is not None and cancel_event.is_set():
            raise RetryCancelledError(
                "Retry sequence cancelled", original=last_error
            )

        try:
            return await operation()
        except InvalidConfigurationError:
            # Misconfiguration never heals on retry
            raise
        except Exception as exc:
            kind = classify_error(exc)
            message, code = _describe(exc)

            if kind is ErrorKind.authentication:
                logger.info("Not retrying authentication failure: %s", message)
                raise AuthenticationError(
                    message or "Authentication error", code=code, original=exc
                ) from exc
            if kind is ErrorKind.validation:
                logger.info("Not retrying validation failure: %s", message)
                raise ValidationError(message, code=code, original=exc) from exc

            last_error = TransientError(message, code=code, original=exc)

        if attempt < policy.max_attempts - 1:
            delay = policy.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d failed, retrying in %.2fs: %s",
                attempt + 1,
                policy.max_attempts,
                delay,
                last_error.message,
            )
            if await _backoff(delay, cancel_event, sleep):
                logger.info("Retry sequence cancelled during backoff")
                raise RetryCancelledError(
                    "Retry sequence cancelled", original=last_error
                )

    logger.error(
        "Giving up after %d attempts: %s", policy.max_attempts, last_error.message
    )
    raise ExhaustedRetriesError(
        "Failed to connect to the server after multiple attempts",
        code=last_error.code,
        original=last_error,
    ) from last_error
