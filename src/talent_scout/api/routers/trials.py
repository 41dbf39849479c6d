"""Trial scheduling endpoints."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel
from starlette.status import HTTP_201_CREATED

from ...core.errors import PermissionDeniedError
from ...core.models import Trial
from ...core.types import TrialStatus, UserRole
from ..dependencies import (
    CurrentUserDependency,
    RequiredAccessToken,
    TrialServiceDependency,
)

router = APIRouter()


class ScheduleTrialRequest(BaseModel):
    player_id: str
    trial_date: datetime
    location: str = ""
    notes: str = ""


class TrialStatusUpdate(BaseModel):
    status: TrialStatus


@router.get("", response_model=list[Trial])
async def list_trials(
    user: CurrentUserDependency,
    trials: TrialServiceDependency,
    token: RequiredAccessToken,
) -> list[Trial]:
    return await trials.list_trials(user.user_id, access_token=token)


@router.post("", response_model=Trial, status_code=HTTP_201_CREATED)
async def schedule_trial(
    body: ScheduleTrialRequest,
    user: CurrentUserDependency,
    trials: TrialServiceDependency,
    token: RequiredAccessToken,
) -> Trial:
    """Book a trial with a player. Only scouts and clubs may schedule."""
    if user.profile is not None and user.profile.role is UserRole.player:
        raise PermissionDeniedError("Only scouts and clubs can schedule trials")
    return await trials.schedule_trial(
        user.user_id,
        body.player_id,
        body.trial_date,
        location=body.location,
        notes=body.notes,
        access_token=token,
    )


@router.patch("/{trial_id}", response_model=Trial)
async def update_trial_status(
    trial_id: str,
    body: TrialStatusUpdate,
    user: CurrentUserDependency,
    trials: TrialServiceDependency,
    token: RequiredAccessToken,
) -> Trial:
    """Change a trial's status. Only the trial's scout or player may do this."""
    trial = await trials.get_trial(trial_id, access_token=token)
    if user.user_id not in (trial.scout_id, trial.player_id):
        raise PermissionDeniedError("Only the trial's scout or player can update it")
    return await trials.update_status(trial_id, body.status, access_token=token)
