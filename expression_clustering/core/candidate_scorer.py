"""
Candidate Scorer - AIC-like model selection criterion.

score = inertia + 2 * M * K

where inertia is the total within-cluster sum of squares, M the number of
features and K the number of clusters (M * K free centroid parameters).
Lower is better.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from expression_clustering.core.base_clustering import PartitionResult
from expression_clustering.utils.error_handling import ConvergenceWarning, InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class ScoredCandidate:
    """One fitted candidate K with its selection score."""

    k: int
    result: PartitionResult
    score: float
    warnings: List[ConvergenceWarning] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k": self.k,
            "score": self.score,
            "inertia": self.result.inertia,
            "converged": self.result.converged,
            "warnings": [w.to_dict() for w in self.warnings],
        }


class CandidateScorer:
    """Scores partitions of a matrix with ``n_features`` columns."""

    def __init__(self, n_features: int):
        if n_features < 1:
            raise InvalidInputError(f"n_features must be >= 1, got {n_features}")
        self.n_features = n_features

    def score(self, result: PartitionResult) -> float:
        """Fit quality plus a penalty linear in the number of centroid parameters."""
        return float(result.inertia + 2 * self.n_features * result.k)

    def select(self, candidates: Sequence[ScoredCandidate]) -> ScoredCandidate:
        """
        Pick the candidate with the strictly lowest score.

        The first candidate wins exact ties, so candidate order matters.
        """
        if not candidates:
            raise InvalidInputError("No candidates to select from")

        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.score < best.score:
                best = candidate

        logger.info(f"Selected k={best.k} with score={best.score:.4f}")
        return best


def score_partition(result: PartitionResult, n_features: int) -> float:
    """AIC-like score of ``result`` for a matrix with ``n_features`` columns."""
    return CandidateScorer(n_features).score(result)
