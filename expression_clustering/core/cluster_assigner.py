"""
Cluster Assigner - Orchestrates model selection over candidate K values.

Main entry point of the clustering core: fits every candidate K, scores it
with the AIC-like criterion and returns the minimum-score partition together
with the full audit trail of discarded candidates.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Union
import numpy as np

from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    PartitionResult,
    as_observation_matrix,
)
from expression_clustering.core.candidate_scorer import CandidateScorer, ScoredCandidate
from expression_clustering.core.partition_fitter import PartitionFitter, SeedLike
from expression_clustering.schemas.data_models import (
    CandidateScore,
    ClusterMembership,
    ConvergenceNotice,
    SelectionReport,
)
from expression_clustering.utils.advanced_logging import LogContext, PerformanceLogger, get_logger
from expression_clustering.utils.error_handling import ConvergenceWarning, InvalidInputError

logger = logging.getLogger(__name__)


class FinalAssignment:
    """Winning partition, its K, and every scored candidate for audit."""

    def __init__(
        self,
        k: int,
        result: PartitionResult,
        score: float,
        candidates: List[ScoredCandidate],
        matrix: ObservationMatrix,
    ):
        self.k = k
        self.result = result
        self.score = score
        self.candidates = tuple(candidates)
        self.observation_ids = matrix.observation_ids
        self.n_features = matrix.n_features

    @property
    def labels(self) -> np.ndarray:
        return self.result.labels

    @property
    def scores(self) -> Dict[int, float]:
        """Candidate k -> score, in evaluation order."""
        return {c.k: c.score for c in self.candidates}

    def assignments(self) -> Dict[Any, int]:
        """Observation id -> cluster id, for joining onto clinical records."""
        return {
            obs_id: int(label)
            for obs_id, label in zip(self.observation_ids, self.result.labels)
        }

    def to_report(
        self,
        quality_metrics: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SelectionReport:
        """Build the serializable selection report."""
        return SelectionReport(
            selected_k=self.k,
            selected_score=self.score,
            n_observations=len(self.observation_ids),
            n_features=self.n_features,
            candidates=[
                CandidateScore(
                    k=c.k,
                    score=c.score,
                    inertia=c.result.inertia,
                    n_iter=c.result.n_iter,
                    converged=c.result.converged,
                    cluster_sizes=c.result.cluster_sizes.tolist(),
                    warnings=[
                        ConvergenceNotice(
                            k=w.k, max_iter=w.max_iter, restarts=w.restarts, message=w.message
                        )
                        for w in c.warnings
                    ],
                )
                for c in self.candidates
            ],
            assignments=[
                ClusterMembership(observation_id=str(obs_id), cluster_id=cluster_id)
                for obs_id, cluster_id in self.assignments().items()
            ],
            quality_metrics=quality_metrics or {},
            metadata=metadata or {},
        )


class ClusterAssigner:
    """
    Model selection over a fixed list of candidate cluster counts.

    Each candidate is fitted with the same seed, so a candidate's partition
    equals a standalone PartitionFitter.fit call with that K.
    """

    def __init__(
        self,
        config: Optional[ClusteringConfig] = None,
        fitter: Optional[PartitionFitter] = None,
    ):
        """
        Initialize cluster assigner.

        Args:
            config: Clustering configuration (defaults used if None)
            fitter: PartitionFitter to use (built from config if None)
        """
        self.config = config or ClusteringConfig()
        self.fitter = fitter or PartitionFitter(self.config)
        logger.info("Initialized ClusterAssigner")

    def select_best_partition(
        self,
        matrix: Union[ObservationMatrix, Any],
        candidate_ks: Optional[Sequence[int]] = None,
        restarts: Optional[int] = None,
        seed: Optional[SeedLike] = None,
    ) -> FinalAssignment:
        """
        Fit every candidate K and keep the minimum-score partition.

        Args:
            matrix: Observation matrix (N x D)
            candidate_ks: Cluster counts to evaluate, in order (config default if None)
            restarts: Restarts per candidate (config default if None)
            seed: Integer seed or SeedSequence (config random_state if None)

        Returns:
            FinalAssignment for the winning K

        Raises:
            InvalidInputError: If candidate_ks is empty or any fit rejects its input
        """
        matrix = as_observation_matrix(matrix)
        candidate_ks = list(self.config.candidate_ks if candidate_ks is None else candidate_ks)
        restarts = self.config.n_restarts if restarts is None else restarts
        seed = self.config.random_state if seed is None else seed

        if not candidate_ks:
            raise InvalidInputError("candidate_ks must contain at least one cluster count")

        run_id = "select-k" + "-".join(str(k) for k in candidate_ks)
        with LogContext.run_context(run_id):
            with PerformanceLogger(
                "select_best_partition",
                logger=get_logger(__name__),
                item_count=len(candidate_ks),
                n_observations=matrix.n_observations,
                n_features=matrix.n_features,
            ):
                results = self._fit_candidates(matrix, candidate_ks, restarts, seed)

                scorer = CandidateScorer(matrix.n_features)
                candidates = [
                    self._score_candidate(scorer, k, result)
                    for k, result in zip(candidate_ks, results)
                ]
                best = scorer.select(candidates)

        return FinalAssignment(
            k=best.k,
            result=best.result,
            score=best.score,
            candidates=candidates,
            matrix=matrix,
        )

    def _fit_candidates(
        self,
        matrix: ObservationMatrix,
        candidate_ks: List[int],
        restarts: int,
        seed: SeedLike,
    ) -> List[PartitionResult]:
        """Fit every candidate; the first failure propagates and aborts selection."""
        if self.config.n_jobs > 1 and len(candidate_ks) > 1:
            with ThreadPoolExecutor(max_workers=min(self.config.n_jobs, len(candidate_ks))) as executor:
                return list(
                    executor.map(
                        lambda k: self.fitter.fit(matrix, k, restarts=restarts, seed=seed),
                        candidate_ks,
                    )
                )
        return [self.fitter.fit(matrix, k, restarts=restarts, seed=seed) for k in candidate_ks]

    def _score_candidate(
        self,
        scorer: CandidateScorer,
        k: int,
        result: PartitionResult,
    ) -> ScoredCandidate:
        candidate = ScoredCandidate(k=k, result=result, score=scorer.score(result))

        if not result.converged:
            warning = ConvergenceWarning(
                k=k,
                max_iter=self.fitter.max_iter,
                restarts=result.non_converged_restarts,
            )
            candidate.warnings.append(warning)
            logger.warning(warning.message)

        logger.info(
            f"Candidate k={k}: inertia={result.inertia:.4f}, score={candidate.score:.4f}"
        )
        return candidate


def select_best_partition(
    matrix: Union[ObservationMatrix, Any],
    candidate_ks: Sequence[int],
    restarts: int,
    seed: SeedLike,
) -> FinalAssignment:
    """Minimum-score partition of ``matrix`` over ``candidate_ks``."""
    return ClusterAssigner().select_best_partition(
        matrix, candidate_ks, restarts=restarts, seed=seed
    )
