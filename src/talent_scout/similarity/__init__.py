"""
Similarity calculation module.

Scores players by how closely their skill ratings match and ranks candidate
pools for "similar players" recommendations.
"""

from .calculator import (
    DEFAULT_RECOMMENDATION_LIMIT,
    ScoredPlayer,
    SimilarityCalculator,
    compute_similarity,
    rank_similar_players,
)

__all__ = [
    "DEFAULT_RECOMMENDATION_LIMIT",
    "ScoredPlayer",
    "SimilarityCalculator",
    "compute_similarity",
    "rank_similar_players",
]
