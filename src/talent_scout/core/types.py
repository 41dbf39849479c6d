"""
Core types and constants for Talent Scout.

This module provides:
- The fixed skill attribute set used for player ratings and similarity
- Enums for roles, positions and record statuses
- Backend table names and well-known backend error codes
"""

from enum import Enum


# =============================================================================
# Skill attributes
# =============================================================================
# Every SkillVector is interpreted over this set. Similarity scoring treats it
# as configuration, never as something derived from the input vectors.

SKILL_ATTRIBUTES: tuple[str, ...] = (
    "pace",
    "shooting",
    "passing",
    "dribbling",
    "defending",
    "physical",
)

MIN_RATING = 0
MAX_RATING = 100

# Ratings given to a freshly signed-up player
DEFAULT_RATING = 50


class UserRole(str, Enum):
    """Account roles."""

    player = "player"
    scout = "scout"
    club = "club"


class PreferredFoot(str, Enum):
    left = "left"
    right = "right"
    both = "both"


class AchievementType(str, Enum):
    award = "award"
    certification = "certification"
    milestone = "milestone"


class TrialStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    completed = "completed"


class SortBy(str, Enum):
    """Search result ordering."""

    relevance = "relevance"
    age = "age"
    rating = "rating"


class PerformancePeriod(str, Enum):
    """Look-back windows for match performance."""

    week = "week"
    month = "month"
    year = "year"


# =============================================================================
# Backend tables
# =============================================================================

PROFILES_TABLE = "profiles"
PLAYERS_TABLE = "players"
ACHIEVEMENTS_TABLE = "player_achievements"
VIDEOS_TABLE = "player_videos"
MATCHES_TABLE = "player_matches"
MESSAGES_TABLE = "messages"
TRIALS_TABLE = "trials"

SEARCH_PLAYERS_RPC = "search_players"

# PostgREST code returned when a single-row lookup matches nothing
NO_ROWS_CODE = "PGRST116"
