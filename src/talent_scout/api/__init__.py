"""
HTTP API for Talent Scout.

Usage:
    from talent_scout.api import create_app

    app = create_app()
"""

from .main import create_app

__all__ = ["create_app"]
