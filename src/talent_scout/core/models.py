"""
Pydantic models for Talent Scout entities.

These models are used for:
- Validating rows returned by the hosted backend
- Building insert/update payloads
- API response serialization
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .types import (
    MAX_RATING,
    MIN_RATING,
    SKILL_ATTRIBUTES,
    AchievementType,
    PreferredFoot,
    SortBy,
    TrialStatus,
    UserRole,
)


def age_from_birth_date(birth_date: date | datetime | str | None, today: date | None = None) -> int:
    """
    Age in whole years, by birth-year subtraction.

    Month and day are ignored, so the result is one year high for anyone
    whose birthday has not yet come round this year. Missing dates give 0.
    """
    if not birth_date:
        return 0
    if isinstance(birth_date, str):
        birth_date = date.fromisoformat(birth_date[:10])
    today = today or date.today()
    return today.year - birth_date.year


# =============================================================================
# Skill ratings
# =============================================================================


class SkillVector(BaseModel):
    """Ratings in [0, 100] over the fixed skill attribute set."""

    model_config = ConfigDict(frozen=True)

    pace: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    shooting: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    passing: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    dribbling: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    defending: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)
    physical: float = Field(default=0, ge=MIN_RATING, le=MAX_RATING)

    @classmethod
    def uniform(cls, rating: float) -> "SkillVector":
        return cls(**{name: rating for name in SKILL_ATTRIBUTES})

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in SKILL_ATTRIBUTES}


# =============================================================================
# Accounts
# =============================================================================


class Profile(BaseModel):
    """Row of the profiles table, one per auth user."""

    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.player
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Session(BaseModel):
    """Auth session issued by the backend. Passed explicitly to service calls."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"
    user_id: str
    email: Optional[str] = None

    @classmethod
    def from_auth_response(cls, payload: dict[str, Any]) -> "Session":
        user = payload.get("user") or {}
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            token_type=payload.get("token_type") or "bearer",
            user_id=user["id"],
            email=user.get("email"),
        )


class CurrentUser(BaseModel):
    """The signed-in auth user together with their profile row."""

    user_id: str
    email: Optional[str] = None
    profile: Optional[Profile] = None


# =============================================================================
# Players
# =============================================================================


class Player(BaseModel):
    """Row of the players table, optionally joined with the owner's profile."""

    id: str
    height: Optional[float] = None
    weight: Optional[float] = None
    position: Optional[str] = None
    preferred_foot: Optional[PreferredFoot] = None
    location: Optional[str] = None
    birth_date: Optional[date] = None
    stats: dict[str, float] = Field(default_factory=dict)
    verified: bool = False
    full_name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def age(self) -> int:
        return age_from_birth_date(self.birth_date)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Player":
        """Flatten an embedded `profiles` object into the player record."""
        data = dict(row)
        profile = data.pop("profiles", None) or {}
        if isinstance(profile, list):
            profile = profile[0] if profile else {}
        data.setdefault("full_name", profile.get("full_name"))
        data.setdefault("email", profile.get("email"))
        data["stats"] = data.get("stats") or {}
        return cls(**data)


class PlayerSummary(BaseModel):
    """Row returned by the search_players RPC."""

    player_id: str
    player_name: Optional[str] = None
    player_position: Optional[str] = None
    player_location: Optional[str] = None
    player_age: int = 0
    player_stats: dict[str, float] = Field(default_factory=dict)
    player_verified: bool = False
    player_height: Optional[float] = None
    player_preferred_foot: Optional[str] = None
    similarity_score: Optional[float] = None

    @computed_field
    @property
    def overall_rating(self) -> float:
        """Mean rating over the skill attribute set, missing attributes as 0."""
        total = sum(self.player_stats.get(name, 0) for name in SKILL_ATTRIBUTES)
        return round(total / len(SKILL_ATTRIBUTES), 2)


class RecommendedPlayer(BaseModel):
    """A similar player, as shown in recommendations."""

    player_id: str
    player_name: Optional[str] = None
    player_position: Optional[str] = None
    player_location: Optional[str] = None
    player_age: int = 0
    player_stats: dict[str, float] = Field(default_factory=dict)
    player_verified: bool = False
    similarity_score: float = Field(ge=0, le=1)


class SearchFilters(BaseModel):
    """Scout search criteria. Constructed per request, never shared."""

    query: str = ""
    position: str = ""
    min_age: int = Field(default=0, ge=0)
    max_age: int = Field(default=100, ge=0)
    location: str = ""
    min_height: float = Field(default=0, ge=0)
    max_height: float = Field(default=300, ge=0)
    preferred_foot: str = ""
    min_stats: dict[str, float] = Field(default_factory=dict)
    sort_by: SortBy = SortBy.relevance
    similar_to: Optional[str] = None

    def to_rpc_params(self) -> dict[str, Any]:
        """Arguments for the search_players RPC. Empty values are sent as null."""
        return {
            "search_query": self.query or None,
            "position_filter": self.position or None,
            "min_age": self.min_age or None,
            "max_age": self.max_age or None,
            "location_filter": self.location or None,
        }


# =============================================================================
# Player content
# =============================================================================


class Achievement(BaseModel):
    id: Optional[str] = None
    player_id: Optional[str] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    achievement_date: Optional[datetime] = None
    achievement_type: AchievementType = AchievementType.award
    verified: bool = False


class Video(BaseModel):
    id: Optional[str] = None
    player_id: Optional[str] = None
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class MatchPerformance(BaseModel):
    """One match from player_matches, missing metrics as 0."""

    match_date: datetime
    minutes_played: float = 0
    distance_covered: float = 0
    sprint_speed: float = 0
    pass_accuracy: float = 0
    shots_on_target: int = 0
    goals: int = 0
    assists: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MatchPerformance":
        metrics = row.get("performance_metrics") or {}
        return cls(
            match_date=row["match_date"],
            minutes_played=row.get("minutes_played") or 0,
            distance_covered=row.get("distance_covered") or 0,
            sprint_speed=row.get("sprint_speed") or 0,
            pass_accuracy=metrics.get("pass_accuracy") or 0,
            shots_on_target=row.get("shots_on_target") or 0,
            goals=row.get("goals") or 0,
            assists=row.get("assists") or 0,
        )


# =============================================================================
# Messaging and trials
# =============================================================================


class Message(BaseModel):
    id: Optional[str] = None
    sender_id: str
    receiver_id: str
    content: str
    attachment_url: Optional[str] = None
    created_at: Optional[datetime] = None


class Trial(BaseModel):
    id: Optional[str] = None
    scout_id: str
    player_id: str
    trial_date: datetime
    location: str = ""
    notes: str = ""
    status: TrialStatus = TrialStatus.pending
    created_at: Optional[datetime] = None
