"""
Pytest configuration for talent-scout tests.
"""

from typing import Callable

import httpx
import pytest

from talent_scout.backend import BackendClient
from talent_scout.core.retry import RetryPolicy

TEST_URL = "https://example.supabase.co"
TEST_KEY = "anon-key"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Three attempts with no waiting."""
    return RetryPolicy(max_attempts=3, base_delay=0)


@pytest.fixture
def make_backend() -> Callable[..., BackendClient]:
    """Build a BackendClient whose requests are answered by `handler`."""

    def _make(handler, **kwargs) -> BackendClient:
        return BackendClient(
            url=TEST_URL,
            api_key=TEST_KEY,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return _make
