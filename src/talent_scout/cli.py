#!/usr/bin/env python3
"""
Command-line interface for Talent Scout.

Usage:
    talent-scout serve --host 0.0.0.0 --port 8000
    talent-scout similar --player-id <uuid> [--limit 3] [--token <access token>]
    talent-scout compare '{"pace": 80}' '{"pace": 60, "shooting": 70}'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("talent_scout.cli")


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the API with uvicorn."""
    import uvicorn

    from .core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "talent_scout.api.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload,
    )
    return 0


async def cmd_similar_async(args: argparse.Namespace) -> int:
    """Print recommendations for a player as JSON."""
    from .backend import BackendClient
    from .core.config import get_settings
    from .core.errors import ScoutError
    from .core.retry import RetryPolicy
    from .services import PlayerService

    settings = get_settings()

    try:
        async with BackendClient.from_settings(settings) as backend:
            service = PlayerService(
                backend,
                RetryPolicy.from_settings(settings),
                candidate_pool=settings.recommendation_pool_size,
            )
            recommendations = await service.get_similar_players(
                args.player_id,
                access_token=args.token,
                limit=args.limit or settings.recommendation_limit,
            )
    except ScoutError as e:
        logger.error("Failed to load recommendations: %s", e.message)
        return 1

    print(json.dumps([r.model_dump(mode="json") for r in recommendations], indent=2))
    return 0


def cmd_similar(args: argparse.Namespace) -> int:
    return asyncio.run(cmd_similar_async(args))


def cmd_compare(args: argparse.Namespace) -> int:
    """Score two rating sets given as JSON objects."""
    from pydantic import ValidationError

    from .core.models import SkillVector
    from .similarity import compute_similarity

    try:
        first = SkillVector.model_validate(json.loads(args.first))
        second = SkillVector.model_validate(json.loads(args.second))
    except json.JSONDecodeError as e:
        logger.error("Ratings must be JSON objects: %s", e)
        return 1
    except ValidationError as e:
        logger.error("Invalid ratings (numbers from 0 to 100 expected): %s", e)
        return 1

    print(f"{compute_similarity(first, second):.4f}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Talent Scout service tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: API_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: API_PORT)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # similar command
    similar_parser = subparsers.add_parser("similar", help="Recommend similar players")
    similar_parser.add_argument("--player-id", required=True, help="Reference player ID")
    similar_parser.add_argument("--limit", type=int, help="Number of players to return")
    similar_parser.add_argument("--token", help="Access token (default: anon key)")

    # compare command
    compare_parser = subparsers.add_parser("compare", help="Score two rating sets")
    compare_parser.add_argument("first", help='JSON ratings, e.g. \'{"pace": 80}\'')
    compare_parser.add_argument("second", help="JSON ratings")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "serve": cmd_serve,
        "similar": cmd_similar,
        "compare": cmd_compare,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
