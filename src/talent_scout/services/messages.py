"""
Messaging service.

Direct messages between players and scouts, plus live delivery of incoming
messages through a subscription handle. Subscriptions poll the messages
table on an asyncio task; `unsubscribe()` stops delivery.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from datetime import datetime
from typing import Any, Callable

from ..backend import eq, gt
from ..core.errors import AuthenticationError, ScoutError, ValidationError
from ..core.models import Message
from ..core.retry import RetryPolicy
from ..core.types import MESSAGES_TABLE
from .base import BackendService

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Message], Any]

DEFAULT_POLL_INTERVAL = 2.0


def conversation_filter(user_id: str, peer_id: str) -> str:
    """PostgREST `or` expression matching messages in either direction."""
    return (
        f"(and(sender_id.eq.{user_id},receiver_id.eq.{peer_id}),"
        f"and(sender_id.eq.{peer_id},receiver_id.eq.{user_id}))"
    )


class Subscription:
    """Handle for a live message subscription."""

    def __init__(self, task: asyncio.Task):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Stop delivery and wait for the polling task to finish."""
        self.unsubscribe()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class MessageService(BackendService):
    """Send, list and subscribe to direct messages."""

    def __init__(
        self,
        backend,
        policy: RetryPolicy | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        super().__init__(backend, policy)
        self._poll_interval = poll_interval

    async def list_messages(
        self,
        user_id: str,
        peer_id: str | None = None,
        access_token: str | None = None,
    ) -> list[Message]:
        """Messages sent or received by the user, oldest first, optionally with one peer."""
        if peer_id:
            expression = conversation_filter(user_id, peer_id)
        else:
            expression = f"(sender_id.eq.{user_id},receiver_id.eq.{user_id})"

        rows = await self._call(
            lambda: self._backend.select(
                MESSAGES_TABLE,
                filters={"or": expression},
                order="created_at.asc",
                access_token=access_token,
            )
        )
        return [Message(**row) for row in rows]

    async def send_message(
        self,
        sender_id: str,
        receiver_id: str,
        content: str,
        access_token: str | None = None,
        attachment_url: str | None = None,
    ) -> Message:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Message content must not be empty", code="EMPTY_MESSAGE")

        row: dict[str, Any] = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": content,
        }
        if attachment_url:
            row["attachment_url"] = attachment_url

        rows = await self._call(
            lambda: self._backend.insert(MESSAGES_TABLE, [row], access_token=access_token)
        )
        return Message(**(rows[0] if rows else row))

    def subscribe(
        self,
        user_id: str,
        callback: MessageCallback,
        *,
        peer_id: str | None = None,
        access_token: str | None = None,
        since: datetime | None = None,
    ) -> Subscription:
        """
        Deliver messages received by `user_id` (from `peer_id` only, if given)
        to `callback` as they arrive. The callback may be sync or async.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self._poll(user_id, callback, peer_id, access_token, since),
            name=f"messages:{user_id}",
        )
        return Subscription(task)

    async def _poll(
        self,
        user_id: str,
        callback: MessageCallback,
        peer_id: str | None,
        access_token: str | None,
        since: datetime | None,
    ) -> None:
        last_seen = since
        # Ids delivered with created_at == last_seen; older ones are past the cursor
        delivered_at_cursor: set[str] = set()

        while True:
            filters = {"receiver_id": eq(user_id)}
            if peer_id:
                filters["sender_id"] = eq(peer_id)
            if last_seen is not None:
                filters["created_at"] = gt(last_seen.isoformat())

            try:
                rows = await self._call(
                    lambda: self._backend.select(
                        MESSAGES_TABLE,
                        filters=filters,
                        order="created_at.asc",
                        access_token=access_token,
                    )
                )
            except AuthenticationError as e:
                logger.error("Stopping message subscription for %s: %s", user_id, e.message)
                return
            except ScoutError as e:
                logger.warning("Message poll for %s failed: %s", user_id, e.message)
                rows = []

            for row in rows:
                try:
                    message = Message(**row)
                except Exception:
                    logger.error(
                        "Skipping malformed message row for %s: %r", user_id, row, exc_info=True
                    )
                    continue

                if message.created_at is not None and last_seen is not None:
                    if message.created_at < last_seen:
                        continue
                    if message.created_at == last_seen and message.id in delivered_at_cursor:
                        continue

                try:
                    result = callback(message)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.error(
                        "Message callback for %s failed on message %s",
                        user_id,
                        message.id,
                        exc_info=True,
                    )

                if message.created_at is not None:
                    if last_seen is None or message.created_at > last_seen:
                        last_seen = message.created_at
                        delivered_at_cursor = set()
                    if message.id is not None:
                        delivered_at_cursor.add(message.id)

            await asyncio.sleep(self._poll_interval)
