"""
Authentication service.

Signs users in and out, creates accounts together with their profile and
role-specific rows, and resolves the current user from a session token.
Session state is returned to the caller rather than held here.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from ..core.errors import AuthenticationError, NotFoundError, ScoutError
from ..core.models import CurrentUser, Session, SkillVector
from ..core.retry import RetryPolicy
from ..core.types import DEFAULT_RATING, NO_ROWS_CODE, PLAYERS_TABLE, UserRole
from .base import BackendService
from .profiles import ProfileService

logger = logging.getLogger(__name__)


class SignUpResult(BaseModel):
    """New account. `session` is None when the backend requires email confirmation."""

    user: CurrentUser
    session: Optional[Session] = None


class AuthService(BackendService):
    """Auth operations against the hosted backend."""

    def __init__(self, backend, policy: RetryPolicy | None = None):
        super().__init__(backend, policy)
        self._profiles = ProfileService(backend, policy)

    async def sign_in(self, email: str, password: str) -> Session:
        payload = await self._call(
            lambda: self._backend.sign_in_with_password(email, password)
        )
        session = Session.from_auth_response(payload)
        logger.info("User %s signed in", session.user_id)
        return session

    async def sign_up(
        self, email: str, password: str, role: UserRole = UserRole.player
    ) -> SignUpResult:
        """
        Create an auth user, their profile and, for players, a players row.

        If anything after the auth user creation fails, the auth user is
        deleted again and the original error is raised.
        """
        role = UserRole(role)
        payload = await self._call(lambda: self._backend.sign_up(email, password))

        user = payload.get("user") or (payload if "id" in payload else None)
        if not user:
            raise ScoutError("Failed to create user", code="SIGNUP_FAILED")

        session = Session.from_auth_response(payload) if payload.get("access_token") else None
        token = session.access_token if session else None
        user_id = user["id"]

        try:
            profile = await self._profiles.create_profile(
                user_id, email, role=role, access_token=token
            )
            if role is UserRole.player:
                stats = SkillVector.uniform(DEFAULT_RATING).as_dict()
                await self._call(
                    lambda: self._backend.upsert(
                        PLAYERS_TABLE,
                        {"id": user_id, "stats": stats},
                        access_token=token,
                    )
                )
        except Exception:
            logger.warning("Sign-up of %s failed after user creation, removing user", user_id)
            try:
                await self._backend.delete_user(user_id)
            except Exception as cleanup_error:
                logger.error("Could not remove user %s: %s", user_id, cleanup_error)
            raise

        logger.info("Created %s account %s", role.value, user_id)
        return SignUpResult(
            user=CurrentUser(user_id=user_id, email=user.get("email", email), profile=profile),
            session=session,
        )

    async def sign_out(self, access_token: str) -> None:
        await self._call(lambda: self._backend.sign_out(access_token))

    async def load_user(self, access_token: str) -> CurrentUser:
        """
        Resolve the user owning `access_token`, creating a default player
        profile if the user has none yet.

        Raises:
            AuthenticationError: The token is missing, invalid or expired
        """
        if not access_token:
            raise AuthenticationError("Not signed in")

        user = await self._call(lambda: self._backend.get_user(access_token))
        if not user or "id" not in user:
            raise AuthenticationError("Session has no user")

        user_id = user["id"]
        try:
            profile = await self._profiles.get_profile(user_id, access_token=access_token)
        except NotFoundError as e:
            if e.code != NO_ROWS_CODE:
                raise
            logger.info("No profile for user %s, creating default player profile", user_id)
            profile = await self._profiles.create_profile(
                user_id,
                user.get("email") or "",
                role=UserRole.player,
                access_token=access_token,
            )

        return CurrentUser(user_id=user_id, email=user.get("email"), profile=profile)
