"""
Auth router - sign in, sign up, sign out and current user.

Endpoints:
- POST /sign-in  - Exchange email/password for a session
- POST /sign-up  - Create an account with a role
- POST /sign-out - Revoke the bearer session
- GET  /me       - Current user and profile
"""

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from ...core.models import CurrentUser, Session
from ...core.types import UserRole
from ...services import SignUpResult
from ..dependencies import (
    AuthServiceDependency,
    CurrentUserDependency,
    RequiredAccessToken,
)

router = APIRouter()


class Credentials(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class SignUpRequest(Credentials):
    role: UserRole = UserRole.player


@router.post("/sign-in", response_model=Session)
async def sign_in(body: Credentials, auth: AuthServiceDependency) -> Session:
    return await auth.sign_in(body.email, body.password)


@router.post("/sign-up", response_model=SignUpResult, status_code=HTTP_201_CREATED)
async def sign_up(body: SignUpRequest, auth: AuthServiceDependency) -> SignUpResult:
    return await auth.sign_up(body.email, body.password, body.role)


@router.post("/sign-out", status_code=HTTP_204_NO_CONTENT)
async def sign_out(auth: AuthServiceDependency, token: RequiredAccessToken) -> Response:
    await auth.sign_out(token)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUserDependency) -> CurrentUser:
    return user
