"""
Services module for Talent Scout.

This module provides business logic services over the hosted backend:
- auth: Sign in/up/out and current-user resolution
- profiles: Account profile rows
- players: Search, player profiles, achievements, videos, performance, recommendations
- messages: Direct messages and live subscriptions
- trials: Trial scheduling

Usage:
    from talent_scout.services import PlayerService

    players = PlayerService(backend)
    similar = await players.get_similar_players(player_id, access_token=token)
"""

from .auth import AuthService, SignUpResult
from .base import BackendService
from .messages import MessageService, Subscription
from .players import PlayerService, to_embed_url
from .profiles import ProfileService
from .trials import TrialService

__all__ = [
    "AuthService",
    "BackendService",
    "MessageService",
    "PlayerService",
    "ProfileService",
    "SignUpResult",
    "Subscription",
    "TrialService",
    "to_embed_url",
]
