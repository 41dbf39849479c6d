"""API routers module."""

from . import auth, messages, players, similarity, trials

__all__ = ["auth", "messages", "players", "similarity", "trials"]
