"""
Dependency injection for API endpoints.

The backend client and settings live on `app.state` for the lifetime of the
application; services are built per request around them, and the caller's
bearer token is read from the request and passed explicitly to each call.
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from ..backend import BackendClient
from ..core.config import Settings
from ..core.errors import AuthenticationError, ScoutError
from ..core.models import CurrentUser
from ..core.retry import RetryPolicy
from ..services import AuthService, MessageService, PlayerService, TrialService


class BackendUnavailableError(ScoutError):
    """Backend URL/key not configured (503)."""

    default_code = "SERVICE_UNAVAILABLE"
    status_code = 503


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


SettingsDependency = Annotated[Settings, Depends(get_app_settings)]


def get_backend(request: Request) -> BackendClient:
    """
    Dependency that provides the shared backend client.

    Raises:
        BackendUnavailableError: If SUPABASE_URL / SUPABASE_ANON_KEY are unset
    """
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise BackendUnavailableError("Backend is not configured")
    return backend


BackendDependency = Annotated[BackendClient, Depends(get_backend)]


def get_retry_policy(settings: SettingsDependency) -> RetryPolicy:
    return RetryPolicy.from_settings(settings)


PolicyDependency = Annotated[RetryPolicy, Depends(get_retry_policy)]


# =============================================================================
# Session
# =============================================================================


def get_access_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Bearer token from the Authorization header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_access_token(
    token: Annotated[str | None, Depends(get_access_token)],
) -> str:
    if not token:
        raise AuthenticationError("Missing bearer token")
    return token


AccessToken = Annotated[str | None, Depends(get_access_token)]
RequiredAccessToken = Annotated[str, Depends(require_access_token)]


# =============================================================================
# Services
# =============================================================================


def get_auth_service(backend: BackendDependency, policy: PolicyDependency) -> AuthService:
    return AuthService(backend, policy)


def get_player_service(
    backend: BackendDependency,
    policy: PolicyDependency,
    settings: SettingsDependency,
) -> PlayerService:
    return PlayerService(
        backend, policy, candidate_pool=settings.recommendation_pool_size
    )


def get_message_service(
    backend: BackendDependency,
    policy: PolicyDependency,
    settings: SettingsDependency,
) -> MessageService:
    return MessageService(backend, policy, poll_interval=settings.message_poll_interval)


def get_trial_service(backend: BackendDependency, policy: PolicyDependency) -> TrialService:
    return TrialService(backend, policy)


AuthServiceDependency = Annotated[AuthService, Depends(get_auth_service)]
PlayerServiceDependency = Annotated[PlayerService, Depends(get_player_service)]
MessageServiceDependency = Annotated[MessageService, Depends(get_message_service)]
TrialServiceDependency = Annotated[TrialService, Depends(get_trial_service)]


async def get_current_user(
    auth: AuthServiceDependency, token: RequiredAccessToken
) -> CurrentUser:
    return await auth.load_user(token)


CurrentUserDependency = Annotated[CurrentUser, Depends(get_current_user)]
