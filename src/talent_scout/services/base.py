"""
Shared plumbing for backend-backed services.

Every backend call a service makes goes through the resilient call wrapper,
so transient failures are retried and auth/validation failures surface
immediately.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from ..core.retry import Operation, RetryPolicy, with_retry

if TYPE_CHECKING:
    from ..backend import BackendClient

T = TypeVar("T")


class BackendService:
    """Base class holding the backend client and retry policy."""

    def __init__(self, backend: "BackendClient", policy: RetryPolicy | None = None):
        self._backend = backend
        self._policy = policy or RetryPolicy()

    @property
    def backend(self) -> "BackendClient":
        return self._backend

    async def _call(
        self, operation: Operation[T], cancel_event: asyncio.Event | None = None
    ) -> T:
        return await with_retry(operation, self._policy, cancel_event=cancel_event)
