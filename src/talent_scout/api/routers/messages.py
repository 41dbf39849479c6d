"""Direct message endpoints for the signed-in user."""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED

from ...core.models import Message
from ..dependencies import (
    CurrentUserDependency,
    MessageServiceDependency,
    RequiredAccessToken,
)

router = APIRouter()


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: str = Field(max_length=5000)
    attachment_url: Optional[str] = None


@router.get("", response_model=list[Message])
async def list_messages(
    user: CurrentUserDependency,
    messages: MessageServiceDependency,
    token: RequiredAccessToken,
    peer_id: Optional[str] = None,
) -> list[Message]:
    return await messages.list_messages(user.user_id, peer_id=peer_id, access_token=token)


@router.post("", response_model=Message, status_code=HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    user: CurrentUserDependency,
    messages: MessageServiceDependency,
    token: RequiredAccessToken,
) -> Message:
    return await messages.send_message(
        user.user_id,
        body.receiver_id,
        body.content,
        access_token=token,
        attachment_url=body.attachment_url,
    )
