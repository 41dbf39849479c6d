"""
Talent Scout backend.

Players build profiles, scouts search and filter them, and both sides
message each other and schedule trials. Persistence and auth live in a
hosted backend (managed Postgres + auth) reached through BackendClient.

Key Features:
- Resilient call wrapper with classified errors and exponential backoff
- Skill-based player similarity for "similar players" recommendations
- FastAPI service exposing auth, players, messages and trials

Usage:
    from talent_scout import BackendClient, PlayerService, get_settings

    settings = get_settings()
    async with BackendClient.from_settings(settings) as backend:
        players = PlayerService(backend)
        similar = await players.get_similar_players("player-uuid")
"""

from .backend import BackendClient, BackendError
from .core import (
    RetryPolicy,
    ScoutError,
    Settings,
    SkillVector,
    get_settings,
    with_retry,
)
from .services import (
    AuthService,
    MessageService,
    PlayerService,
    ProfileService,
    TrialService,
)
from .similarity import SimilarityCalculator, compute_similarity, rank_similar_players

__all__ = [
    # Backend
    "BackendClient",
    "BackendError",
    # Core
    "RetryPolicy",
    "ScoutError",
    "Settings",
    "SkillVector",
    "get_settings",
    "with_retry",
    # Services
    "AuthService",
    "MessageService",
    "PlayerService",
    "ProfileService",
    "TrialService",
    # Similarity
    "SimilarityCalculator",
    "compute_similarity",
    "rank_similar_players",
]
