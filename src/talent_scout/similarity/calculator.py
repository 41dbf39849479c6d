"""
Similarity calculator for player comparison based on skill ratings.

Scores two players by the normalised inverse of their total absolute rating
difference over a fixed attribute set, then ranks a candidate pool to pick
the most similar players for recommendations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..core.errors import InvalidConfigurationError
from ..core.models import SkillVector
from ..core.types import MAX_RATING, SKILL_ATTRIBUTES

logger = logging.getLogger(__name__)

DEFAULT_RECOMMENDATION_LIMIT = 3

Ratings = Mapping[str, float] | SkillVector


@dataclass(frozen=True)
class ScoredPlayer:
    """A candidate with its similarity to the reference player."""

    player_id: str
    similarity_score: float


def _as_mapping(ratings: Ratings | None) -> Mapping[str, Any]:
    if ratings is None:
        return {}
    if isinstance(ratings, SkillVector):
        return ratings.as_dict()
    return ratings


class SimilarityCalculator:
    """
    Computes player similarity over a fixed set of skill attributes.

    similarity = 1 - sum(|a[k] - b[k]|) / (100 * number_of_attributes)

    Missing attributes count as 0. Scores are symmetric and lie in [0, 1].
    """

    def __init__(self, attributes: Iterable[str] = SKILL_ATTRIBUTES):
        """
        Initialize the calculator.

        Args:
            attributes: Skill attribute names every vector is compared over

        Raises:
            InvalidConfigurationError: If the attribute set is empty
        """
        self.attributes: tuple[str, ...] = tuple(dict.fromkeys(attributes))
        if not self.attributes:
            raise InvalidConfigurationError(
                "Similarity requires at least one skill attribute"
            )

    @property
    def max_possible_diff(self) -> float:
        return MAX_RATING * len(self.attributes)

    # =========================================================================
    # Core Similarity Computation
    # =========================================================================

    def compute_similarity(self, a: Ratings | None, b: Ratings | None) -> float:
        """
        Compute similarity between two players' ratings.

        Args:
            a: First player's ratings {attribute: rating}
            b: Second player's ratings {attribute: rating}

        Returns:
            Similarity score, 1.0 for identical ratings and 0.0 for opposite extremes
        """
        if not self.attributes:
            raise InvalidConfigurationError(
                "Similarity requires at least one skill attribute"
            )

        first = _as_mapping(a)
        second = _as_mapping(b)

        total_diff = sum(
            abs((first.get(name) or 0) - (second.get(name) or 0))
            for name in self.attributes
        )

        similarity = 1 - total_diff / self.max_possible_diff

        # Ratings outside [0, 100] would otherwise escape the range
        return max(0.0, min(1.0, similarity))

    # =========================================================================
    # Ranking
    # =========================================================================

    def rank_candidates(
        self,
        reference: Ratings | None,
        candidates: Iterable[tuple[str, Ratings | None]],
        limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> list[ScoredPlayer]:
        """
        Rank candidates by similarity to the reference player.

        The candidate pool is expected to be pre-filtered (same position,
        reference player excluded). Ties are broken by player id ascending.

        Args:
            reference: Reference player's ratings
            candidates: (player_id, ratings) pairs
            limit: Number of players to keep

        Returns:
            Top `limit` ScoredPlayer entries, best first
        """
        scored = [
            ScoredPlayer(
                player_id=str(player_id),
                similarity_score=self.compute_similarity(reference, ratings),
            )
            for player_id, ratings in candidates
        ]
        scored.sort(key=lambda s: (-s.similarity_score, s.player_id))

        logger.debug("Ranked %d candidates, keeping %d", len(scored), limit)
        return scored[: max(limit, 0)]


_default_calculator = SimilarityCalculator()


def compute_similarity(a: Ratings | None, b: Ratings | None) -> float:
    """Similarity over the default skill attributes."""
    return _default_calculator.compute_similarity(a, b)


def rank_similar_players(
    reference: Ratings | None,
    candidates: Iterable[tuple[str, Ratings | None]],
    limit: int = DEFAULT_RECOMMENDATION_LIMIT,
) -> list[ScoredPlayer]:
    """Top `limit` candidates over the default skill attributes."""
    return _default_calculator.rank_candidates(reference, candidates, limit)
