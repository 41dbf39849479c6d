"""
Similarity router - "similar players" recommendations.

Endpoints:
- GET /players/{player_id} - Most similar players in the same position
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from ...core.models import RecommendedPlayer
from ..dependencies import AccessToken, PlayerServiceDependency, SettingsDependency

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================


class SimilarPlayerResponse(RecommendedPlayer):
    similarity_label: str


class SimilarPlayersResponse(BaseModel):
    player_id: str
    similar_players: list[SimilarPlayerResponse] = Field(default_factory=list)


# =============================================================================
# Helper Functions
# =============================================================================


def _get_similarity_label(score: float) -> str:
    """Convert similarity score to human-readable label."""
    if score >= 0.95:
        return "Nearly Identical"
    elif score >= 0.90:
        return "Very Similar"
    elif score >= 0.80:
        return "Similar"
    elif score >= 0.65:
        return "Somewhat Similar"
    else:
        return "Different"


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/players/{player_id}", response_model=SimilarPlayersResponse)
async def get_similar_players(
    player_id: str,
    players: PlayerServiceDependency,
    settings: SettingsDependency,
    token: AccessToken,
    limit: Annotated[
        int | None, Query(ge=1, le=20, description="Number of similar players")
    ] = None,
) -> SimilarPlayersResponse:
    """
    Get players most similar to the specified player.

    Candidates share the player's position; each is scored from 0.0
    (opposite ratings) to 1.0 (identical ratings) and the best are
    returned, ties ordered by player id.
    """
    recommendations = await players.get_similar_players(
        player_id,
        access_token=token,
        limit=limit or settings.recommendation_limit,
    )
    return SimilarPlayersResponse(
        player_id=player_id,
        similar_players=[
            SimilarPlayerResponse(
                **r.model_dump(),
                similarity_label=_get_similarity_label(r.similarity_score),
            )
            for r in recommendations
        ],
    )
