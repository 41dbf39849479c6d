"""
Profile service: one profiles row per auth user.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from ..backend import eq
from ..core.errors import NotFoundError
from ..core.models import Profile
from ..core.types import NO_ROWS_CODE, PROFILES_TABLE, UserRole
from .base import BackendService

logger = logging.getLogger(__name__)


class ProfileService(BackendService):
    """Reads and writes rows of the profiles table."""

    async def get_profile(self, user_id: str, access_token: str | None = None) -> Profile:
        """
        Fetch a user's profile.

        Raises:
            NotFoundError: No profile row exists (code PGRST116)
        """
        rows = await self._call(
            lambda: self._backend.select(
                PROFILES_TABLE,
                filters={"id": eq(user_id)},
                limit=1,
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Profile", user_id, code=NO_ROWS_CODE)
        return Profile(**rows[0])

    async def create_profile(
        self,
        user_id: str,
        email: str,
        role: UserRole = UserRole.player,
        full_name: str | None = None,
        access_token: str | None = None,
    ) -> Profile:
        """Create (or overwrite) the profile row for a user."""
        row: dict[str, Any] = {"id": user_id, "email": email, "role": UserRole(role).value}
        if full_name is not None:
            row["full_name"] = full_name

        rows = await self._call(
            lambda: self._backend.upsert(PROFILES_TABLE, row, access_token=access_token)
        )
        logger.info("Created %s profile for user %s", row["role"], user_id)
        return Profile(**(rows[0] if rows else row))

    async def update_profile(
        self,
        user_id: str,
        updates: dict[str, Any],
        access_token: str | None = None,
    ) -> Profile:
        """Apply partial updates to a profile."""
        values = {k: v for k, v in updates.items() if k != "id"}
        values["updated_at"] = datetime.now(tz=timezone.utc).isoformat()

        rows = await self._call(
            lambda: self._backend.update(
                PROFILES_TABLE,
                values,
                filters={"id": eq(user_id)},
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Profile", user_id, code=NO_ROWS_CODE)
        return Profile(**rows[0])
