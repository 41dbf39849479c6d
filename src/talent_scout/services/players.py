"""
Player service.

Search, player profiles, achievements, highlight videos, match performance
and "similar players" recommendations. Every backend call is wrapped in the
resilient call wrapper; ranking is done locally by the SimilarityCalculator.
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qs, urlparse

from ..backend import eq, neq
from ..core.errors import NotFoundError, ValidationError
from ..core.models import (
    Achievement,
    MatchPerformance,
    Player,
    PlayerSummary,
    RecommendedPlayer,
    SearchFilters,
    Video,
    age_from_birth_date,
)
from ..core.retry import RetryPolicy
from ..core.types import (
    ACHIEVEMENTS_TABLE,
    MATCHES_TABLE,
    NO_ROWS_CODE,
    PLAYERS_TABLE,
    SEARCH_PLAYERS_RPC,
    VIDEOS_TABLE,
    PerformancePeriod,
    SortBy,
)
from ..similarity import DEFAULT_RECOMMENDATION_LIMIT, SimilarityCalculator
from .base import BackendService

logger = logging.getLogger(__name__)

PLAYER_PROFILE_COLUMNS = "*,profiles(full_name,email,role)"
CANDIDATE_COLUMNS = "id,profiles!inner(full_name),position,location,birth_date,stats,verified"

DEFAULT_CANDIDATE_POOL = 10


def to_embed_url(url: str) -> str:
    """
    Convert a YouTube or Vimeo watch URL to its embeddable form.

    Other URLs, and anything that does not parse, are returned unchanged.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    host = parsed.hostname or ""
    if "youtu.be" in host:
        video_id = parsed.path.lstrip("/")
        return f"https://www.youtube.com/embed/{video_id}"
    if "youtube.com" in host:
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if not video_id:
            return url
        return f"https://www.youtube.com/embed/{video_id}"
    if "vimeo.com" in host:
        video_id = parsed.path.rstrip("/").split("/")[-1]
        return f"https://player.vimeo.com/video/{video_id}"
    return url


def period_start(period: PerformancePeriod, now: datetime) -> datetime:
    """Start of the look-back window ending at `now`."""
    period = PerformancePeriod(period)
    if period is PerformancePeriod.week:
        return now - timedelta(days=7)
    if period is PerformancePeriod.month:
        year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    else:
        year, month = now.year - 1, now.month
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


class PlayerService(BackendService):
    """Player-facing and scout-facing player operations."""

    def __init__(
        self,
        backend,
        policy: RetryPolicy | None = None,
        calculator: SimilarityCalculator | None = None,
        candidate_pool: int = DEFAULT_CANDIDATE_POOL,
    ):
        super().__init__(backend, policy)
        self._calculator = calculator or SimilarityCalculator()
        self._candidate_pool = candidate_pool

    # =========================================================================
    # Search
    # =========================================================================

    async def search_players(
        self, filters: SearchFilters, access_token: str | None = None
    ) -> list[PlayerSummary]:
        """
        Search players via the search_players RPC, then apply the filters
        the RPC does not take (height, preferred foot, minimum ratings) and
        the requested ordering.
        """
        rows = await self._call(
            lambda: self._backend.rpc(
                SEARCH_PLAYERS_RPC, filters.to_rpc_params(), access_token=access_token
            )
        )
        players = [PlayerSummary(**row) for row in rows or []]
        players = [p for p in players if self._matches(p, filters)]

        if filters.similar_to:
            reference = (await self._reference_player(filters.similar_to, access_token)).get("stats")
            players = [
                p.model_copy(
                    update={
                        "similarity_score": self._calculator.compute_similarity(
                            reference, p.player_stats
                        )
                    }
                )
                for p in players
                if p.player_id != filters.similar_to
            ]
            players.sort(key=lambda p: (-p.similarity_score, p.player_id))
        elif filters.sort_by is SortBy.age:
            players.sort(key=lambda p: (p.player_age, p.player_id))
        elif filters.sort_by is SortBy.rating:
            players.sort(key=lambda p: (-p.overall_rating, p.player_id))

        logger.debug("Search returned %d players", len(players))
        return players

    @staticmethod
    def _matches(player: PlayerSummary, filters: SearchFilters) -> bool:
        for name, minimum in filters.min_stats.items():
            if (player.player_stats.get(name) or 0) < minimum:
                return False
        if player.player_height is not None and not (
            filters.min_height <= player.player_height <= filters.max_height
        ):
            return False
        if (
            filters.preferred_foot
            and player.player_preferred_foot
            and player.player_preferred_foot != filters.preferred_foot
        ):
            return False
        return True

    # =========================================================================
    # Profile
    # =========================================================================

    async def get_player_profile(self, player_id: str, access_token: str | None = None) -> Player:
        rows = await self._call(
            lambda: self._backend.select(
                PLAYERS_TABLE,
                columns=PLAYER_PROFILE_COLUMNS,
                filters={"id": eq(player_id)},
                limit=1,
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Player", player_id, code=NO_ROWS_CODE)
        return Player.from_row(rows[0])

    async def update_player_profile(
        self,
        player_id: str,
        updates: dict[str, Any],
        access_token: str | None = None,
    ) -> Player:
        """Upsert the players row, stamping updated_at."""
        row = {
            **{k: v for k, v in updates.items() if k != "id"},
            "id": player_id,
            "updated_at": datetime.now(tz=timezone.utc).isoformat(),
        }
        rows = await self._call(
            lambda: self._backend.upsert(PLAYERS_TABLE, row, access_token=access_token)
        )
        return Player.from_row(rows[0] if rows else row)

    # =========================================================================
    # Achievements and videos
    # =========================================================================

    async def get_achievements(
        self, player_id: str, access_token: str | None = None
    ) -> list[Achievement]:
        rows = await self._call(
            lambda: self._backend.select(
                ACHIEVEMENTS_TABLE,
                filters={"player_id": eq(player_id)},
                order="achievement_date.desc",
                access_token=access_token,
            )
        )
        return [Achievement(**row) for row in rows]

    async def add_achievement(
        self,
        player_id: str,
        achievement: Achievement,
        access_token: str | None = None,
    ) -> Achievement:
        """Record an achievement. A missing date defaults to now."""
        payload = achievement.model_dump(
            mode="json", exclude={"id", "verified"}, exclude_none=True
        )
        payload["player_id"] = player_id
        payload.setdefault("achievement_date", datetime.now(tz=timezone.utc).isoformat())

        rows = await self._call(
            lambda: self._backend.insert(ACHIEVEMENTS_TABLE, [payload], access_token=access_token)
        )
        return Achievement(**(rows[0] if rows else payload))

    async def get_videos(self, player_id: str, access_token: str | None = None) -> list[Video]:
        rows = await self._call(
            lambda: self._backend.select(
                VIDEOS_TABLE,
                filters={"player_id": eq(player_id)},
                order="created_at.desc",
                access_token=access_token,
            )
        )
        return [Video(**row) for row in rows]

    async def add_video(
        self, player_id: str, video: Video, access_token: str | None = None
    ) -> Video:
        """Store a highlight video, normalising YouTube/Vimeo links to embed URLs."""
        payload = video.model_dump(mode="json", exclude={"id", "created_at"}, exclude_none=True)
        payload["player_id"] = player_id
        payload["url"] = to_embed_url(video.url)

        rows = await self._call(
            lambda: self._backend.insert(VIDEOS_TABLE, [payload], access_token=access_token)
        )
        return Video(**(rows[0] if rows else payload))

    # =========================================================================
    # Performance
    # =========================================================================

    async def get_performance(
        self,
        player_id: str,
        period: PerformancePeriod = PerformancePeriod.month,
        access_token: str | None = None,
        now: datetime | None = None,
    ) -> list[MatchPerformance]:
        """Matches played within the period, oldest first."""
        now = now or datetime.now(tz=timezone.utc)
        start = period_start(period, now)

        rows = await self._call(
            lambda: self._backend.select(
                MATCHES_TABLE,
                filters={
                    "player_id": eq(player_id),
                    "and": f"(match_date.gte.{start.isoformat()},match_date.lte.{now.isoformat()})",
                },
                order="match_date.asc",
                access_token=access_token,
            )
        )
        return [MatchPerformance.from_row(row) for row in rows]

    # =========================================================================
    # Recommendations
    # =========================================================================

    async def _reference_player(
        self, player_id: str, access_token: str | None
    ) -> dict[str, Any]:
        """Position and ratings of the player recommendations are based on."""
        rows = await self._call(
            lambda: self._backend.select(
                PLAYERS_TABLE,
                columns="position,stats",
                filters={"id": eq(player_id)},
                limit=1,
                access_token=access_token,
            )
        )
        if not rows:
            raise NotFoundError("Player", player_id, code=NO_ROWS_CODE)
        return rows[0]

    async def get_similar_players(
        self,
        player_id: str,
        access_token: str | None = None,
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[RecommendedPlayer]:
        """
        Recommend players similar to `player_id`.

        Candidates are players in the same position (the player excluded),
        scored by skill similarity; the top `limit` are returned, ties
        broken by player id.
        """
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}")

        reference = await self._reference_player(player_id, access_token)

        position = reference.get("position")
        candidate_rows = await self._call(
            lambda: self._backend.select(
                PLAYERS_TABLE,
                columns=CANDIDATE_COLUMNS,
                filters={
                    "position": eq(position) if position else "is.null",
                    "id": neq(player_id),
                },
                limit=self._candidate_pool,
                access_token=access_token,
            )
        )
        by_id = {str(row["id"]): row for row in candidate_rows}

        ranked = self._calculator.rank_candidates(
            reference.get("stats"),
            ((pid, row.get("stats")) for pid, row in by_id.items()),
            limit=limit,
        )

        recommendations = []
        for scored in ranked:
            row = by_id[scored.player_id]
            profile = row.get("profiles") or {}
            if isinstance(profile, list):
                profile = profile[0] if profile else {}
            recommendations.append(
                RecommendedPlayer(
                    player_id=scored.player_id,
                    player_name=profile.get("full_name"),
                    player_position=row.get("position"),
                    player_location=row.get("location"),
                    player_age=age_from_birth_date(row.get("birth_date")),
                    player_stats=row.get("stats") or {},
                    player_verified=bool(row.get("verified")),
                    similarity_score=scored.similarity_score,
                )
            )

        logger.info(
            "Recommended %d of %d candidates for player %s",
            len(recommendations),
            len(by_id),
            player_id,
        )
        return recommendations
