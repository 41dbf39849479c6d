"""
Core module for Talent Scout.

This module provides the foundational components:
- Configuration management (config.py)
- Error taxonomy (errors.py)
- Resilient call wrapper (retry.py)
- Data models (models.py)
- Constants and enums (types.py)

Usage:
    from talent_scout.core import Settings, get_settings
    from talent_scout.core import RetryPolicy, with_retry
    from talent_scout.core import SkillVector, SearchFilters
"""

# Configuration
from .config import Settings, get_settings

# Errors
from .errors import (
    AuthenticationError,
    ExhaustedRetriesError,
    InvalidConfigurationError,
    NotFoundError,
    PermissionDeniedError,
    RetryCancelledError,
    ScoutError,
    TransientError,
    ValidationError,
)

# Retry
from .retry import ErrorKind, RetryPolicy, classify_error, with_retry

# Models
from .models import (
    Achievement,
    CurrentUser,
    MatchPerformance,
    Message,
    Player,
    PlayerSummary,
    Profile,
    RecommendedPlayer,
    SearchFilters,
    Session,
    SkillVector,
    Trial,
    Video,
    age_from_birth_date,
)

# Types
from .types import SKILL_ATTRIBUTES, UserRole

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "AuthenticationError",
    "ExhaustedRetriesError",
    "InvalidConfigurationError",
    "NotFoundError",
    "PermissionDeniedError",
    "RetryCancelledError",
    "ScoutError",
    "TransientError",
    "ValidationError",
    # Retry
    "ErrorKind",
    "RetryPolicy",
    "classify_error",
    "with_retry",
    # Models
    "Achievement",
    "CurrentUser",
    "MatchPerformance",
    "Message",
    "Player",
    "PlayerSummary",
    "Profile",
    "RecommendedPlayer",
    "SearchFilters",
    "Session",
    "SkillVector",
    "Trial",
    "Video",
    "age_from_birth_date",
    # Types
    "SKILL_ATTRIBUTES",
    "UserRole",
]
