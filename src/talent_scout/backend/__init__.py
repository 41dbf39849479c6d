"""
Hosted backend access.

Usage:
    from talent_scout.backend import BackendClient, BackendError, eq
"""

from .client import BackendClient, BackendError, eq, gt, gte, lte, neq

__all__ = [
    "BackendClient",
    "BackendError",
    "eq",
    "gt",
    "gte",
    "lte",
    "neq",
]
