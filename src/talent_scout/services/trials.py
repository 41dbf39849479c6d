"""
Trial scheduling: scouts invite players to trials, players answer.
"""

import logging
from datetime import datetime

from ..backend import eq
from ..core.errors import NotFoundError, ValidationError
from ..core.models import Trial
from ..core.types import NO_ROWS_CODE, TRIALS_TABLE, TrialStatus
from .base import BackendService

logger = logging.getLogger(__name__)


class TrialService(BackendService):
    """Create and track trial invitations."""

    async def schedule_trial(
        self,
        scout_id: str,
        player_id: str,
        trial_date: datetime,
        location: str = "",
        notes: str = "",
        access_token: str | None = None,
    ) -> Trial:
        """Book a trial. New trials start as pending."""
        if scout_id == player_id:
            raise ValidationError("A trial needs a scout and a different player")

        trial = Trial(
            scout_id=scout_id,
            player_id=player_id,
            trial_date=trial_date,
            location=location,
            notes=notes,
        )
        payload = trial.model_dump(mode="json", exclude={"id", "created_at"})

        rows = await self._call(
            lambda: self._backend.insert(TRIALS_TABLE, [payload], access_token=access_token)
        )
        logger.info("Scout %s scheduled a trial with player %s", scout_id, player_id)
        return Trial(**rows[0]) if rows else trial

    async def list_trials(self, user_id: str, access_token: str | None = None) -> list[Trial]:
        """Trials the user takes part in, as scout or player, soonest first."""
        rows = await self._call(
            lambda: self._backend.select(
                TRIALS_TABLE,
                filters={"or": f"(scout_id.eq.{user_id},player_id.eq.{user_id})"},
                order="trial_date.asc",
                access_token=access_token,
            )
        )
        return [Trial(**row) for row in rows]

    async def get_trial(self, trial_id: str, access_token: str | None = None) -> Trial:
        rows = await self._call(
            lambda: self._backend.select(
                TRIALS_TABLE,
                filters={"id": eq(trial_id)},
                limit=1,
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Trial", trial_id, code=NO_ROWS_CODE)
        return Trial(**rows[0])

    async def update_status(
        self,
        trial_id: str,
        status: TrialStatus,
        access_token: str | None = None,
    ) -> Trial:
        status = TrialStatus(status)
        rows = await self._call(
            lambda: self._backend.update(
                TRIALS_TABLE,
                {"status": status.value},
                filters={"id": eq(trial_id)},
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Trial", trial_id, code=NO_ROWS_CODE)
        return Trial(**rows[0])
