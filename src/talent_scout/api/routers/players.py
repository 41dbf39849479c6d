"""Player API endpoints."""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED

from ...core.errors import ValidationError
from ...core.models import (
    Achievement,
    MatchPerformance,
    Player,
    PlayerSummary,
    SearchFilters,
    Video,
)
from ...core.types import SKILL_ATTRIBUTES, PerformancePeriod, PreferredFoot, SortBy
from ..dependencies import AccessToken, PlayerServiceDependency, RequiredAccessToken

router = APIRouter()


class PlayerUpdate(BaseModel):
    """Editable fields of a player profile."""

    height: Optional[float] = Field(default=None, ge=0, le=300)
    weight: Optional[float] = Field(default=None, ge=0, le=300)
    position: Optional[str] = None
    preferred_foot: Optional[PreferredFoot] = None
    location: Optional[str] = None
    birth_date: Optional[str] = None
    stats: Optional[dict[str, float]] = None


def _parse_min_stats(values: list[str]) -> dict[str, float]:
    """Parse `attribute:rating` pairs, e.g. ["pace:70", "passing:60"]."""
    min_stats: dict[str, float] = {}
    for value in values:
        name, _, rating = value.partition(":")
        if name not in SKILL_ATTRIBUTES:
            raise ValidationError(f"Unknown skill attribute: {name!r}")
        try:
            min_stats[name] = float(rating)
        except ValueError:
            raise ValidationError(f"Invalid rating for {name}: {rating!r}") from None
    return min_stats


@router.get("", response_model=list[PlayerSummary])
async def search_players(
    players: PlayerServiceDependency,
    token: AccessToken,
    query: str = "",
    position: str = "",
    min_age: Annotated[int, Query(ge=0)] = 0,
    max_age: Annotated[int, Query(ge=0)] = 100,
    location: str = "",
    min_height: Annotated[float, Query(ge=0)] = 0,
    max_height: Annotated[float, Query(ge=0)] = 300,
    preferred_foot: str = "",
    min_stat: Annotated[
        list[str], Query(description="Minimum rating as attribute:value, repeatable")
    ] = [],
    sort_by: SortBy = SortBy.relevance,
    similar_to: Optional[str] = None,
) -> list[PlayerSummary]:
    """
    Search players.

    Name/position/age/location are matched by the backend; height,
    preferred foot and minimum ratings are applied to the results.
    Passing `similar_to` orders results by similarity to that player.
    """
    filters = SearchFilters(
        query=query,
        position=position,
        min_age=min_age,
        max_age=max_age,
        location=location,
        min_height=min_height,
        max_height=max_height,
        preferred_foot=preferred_foot,
        min_stats=_parse_min_stats(min_stat),
        sort_by=sort_by,
        similar_to=similar_to,
    )
    return await players.search_players(filters, access_token=token)


@router.get("/{player_id}", response_model=Player)
async def get_player(
    player_id: str, players: PlayerServiceDependency, token: AccessToken
) -> Player:
    return await players.get_player_profile(player_id, access_token=token)


@router.patch("/{player_id}", response_model=Player)
async def update_player(
    player_id: str,
    body: PlayerUpdate,
    players: PlayerServiceDependency,
    token: RequiredAccessToken,
) -> Player:
    updates: dict[str, Any] = body.model_dump(mode="json", exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")
    return await players.update_player_profile(player_id, updates, access_token=token)


@router.get("/{player_id}/achievements", response_model=list[Achievement])
async def list_achievements(
    player_id: str, players: PlayerServiceDependency, token: AccessToken
) -> list[Achievement]:
    return await players.get_achievements(player_id, access_token=token)


@router.post(
    "/{player_id}/achievements",
    response_model=Achievement,
    status_code=HTTP_201_CREATED,
)
async def add_achievement(
    player_id: str,
    body: Achievement,
    players: PlayerServiceDependency,
    token: RequiredAccessToken,
) -> Achievement:
    return await players.add_achievement(player_id, body, access_token=token)


@router.get("/{player_id}/videos", response_model=list[Video])
async def list_videos(
    player_id: str, players: PlayerServiceDependency, token: AccessToken
) -> list[Video]:
    return await players.get_videos(player_id, access_token=token)


@router.post("/{player_id}/videos", response_model=Video, status_code=HTTP_201_CREATED)
async def add_video(
    player_id: str,
    body: Video,
    players: PlayerServiceDependency,
    token: RequiredAccessToken,
) -> Video:
    return await players.add_video(player_id, body, access_token=token)


@router.get("/{player_id}/performance", response_model=list[MatchPerformance])
async def get_performance(
    player_id: str,
    players: PlayerServiceDependency,
    token: AccessToken,
    period: PerformancePeriod = PerformancePeriod.month,
) -> list[MatchPerformance]:
    return await players.get_performance(player_id, period, access_token=token)
