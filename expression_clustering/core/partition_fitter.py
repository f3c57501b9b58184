"""
K-Means Partition Fitter (Lloyd's algorithm).

Fits a fixed number of clusters K from several random initializations and
keeps the run with the lowest total within-cluster sum of squares.

Reproducibility:
- All randomness comes from the caller's seed
- Restart r always draws from child r of SeedSequence(seed), so adding
  restarts only appends runs and the best inertia can never get worse
- Threaded restarts return exactly what the sequential loop returns
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Union
import numpy as np

from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    PartitionResult,
    as_observation_matrix,
)
from expression_clustering.utils.error_handling import InvalidInputError

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.SeedSequence]


class PartitionFitter:
    """
    Multi-restart K-Means.

    Empty clusters: a centroid that receives no observations is moved onto
    the observation farthest from its own assigned centroid (lowest index on
    ties, each observation used once per iteration).
    """

    def __init__(self, config: Optional[ClusteringConfig] = None):
        """
        Initialize K-Means fitter.

        Args:
            config: Clustering configuration (defaults used if None)
        """
        self.config = config or ClusteringConfig()
        self.max_iter = self.config.max_iter
        self.n_jobs = self.config.n_jobs

        if self.max_iter < 1:
            raise InvalidInputError(f"max_iter must be >= 1, got {self.max_iter}")

        logger.debug(
            f"Initialized PartitionFitter: max_iter={self.max_iter}, n_jobs={self.n_jobs}"
        )

    def fit(
        self,
        matrix: Union[ObservationMatrix, Any],
        k: int,
        restarts: Optional[int] = None,
        seed: Optional[SeedLike] = None,
    ) -> PartitionResult:
        """
        Fit K clusters and return the best of ``restarts`` runs.

        Args:
            matrix: Observation matrix (N x D)
            k: Number of clusters, 1 <= k < N
            restarts: Independent random initializations (config default if None)
            seed: Integer seed or SeedSequence (config random_state if None)

        Returns:
            PartitionResult of the run with the lowest inertia

        Raises:
            InvalidInputError: If k or restarts is out of range
        """
        matrix = as_observation_matrix(matrix)
        restarts = self.config.n_restarts if restarts is None else restarts
        seed = self.config.random_state if seed is None else seed

        _validate_k(k, matrix.n_observations)
        if isinstance(restarts, bool) or not isinstance(restarts, (int, np.integer)) or restarts < 1:
            raise InvalidInputError(f"restarts must be a positive integer, got {restarts!r}")

        child_seeds = _seed_sequence(seed).spawn(int(restarts))
        vectors = matrix.values

        logger.info(
            f"Starting K-Means on {matrix.n_observations} observations x "
            f"{matrix.n_features} features: k={k}, restarts={restarts}"
        )

        if self.n_jobs > 1 and restarts > 1:
            with ThreadPoolExecutor(max_workers=min(self.n_jobs, restarts)) as executor:
                runs = list(
                    executor.map(
                        lambda r: self._run_lloyd(vectors, k, child_seeds[r], r),
                        range(restarts),
                    )
                )
        else:
            runs = [self._run_lloyd(vectors, k, child_seeds[r], r) for r in range(restarts)]

        best = runs[0]
        for run in runs[1:]:
            if run.inertia < best.inertia:
                best = run

        best.non_converged_restarts = sum(1 for run in runs if not run.converged)
        if best.non_converged_restarts:
            logger.debug(
                f"k={k}: {best.non_converged_restarts}/{restarts} restarts hit "
                f"max_iter={self.max_iter}"
            )

        logger.info(
            f"K-Means k={k} best inertia={best.inertia:.4f} "
            f"(restart {best.restart}, {best.n_iter} iterations)"
        )
        return best

    def _run_lloyd(
        self,
        vectors: np.ndarray,
        k: int,
        seed: np.random.SeedSequence,
        restart: int,
    ) -> PartitionResult:
        """Single Lloyd run from a random initialization."""
        rng = np.random.default_rng(seed)
        n_obs = vectors.shape[0]

        initial = rng.choice(n_obs, size=k, replace=False)
        centroids = vectors[initial].copy()
        labels = _assign(vectors, centroids)

        converged = False
        n_iter = 0
        while n_iter < self.max_iter:
            n_iter += 1
            centroids = _update_centroids(vectors, labels, centroids)
            new_labels = _assign(vectors, centroids)
            if np.array_equal(new_labels, labels):
                converged = True
                break
            labels = new_labels

        inertia = float(np.sum((vectors - centroids[labels]) ** 2))

        labels.setflags(write=False)
        centroids.setflags(write=False)
        return PartitionResult(
            labels=labels,
            centroids=centroids,
            inertia=inertia,
            n_iter=n_iter,
            converged=converged,
            restart=restart,
        )


def _assign(vectors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Nearest centroid per observation; argmin keeps the lowest id on ties."""
    squared = np.empty((vectors.shape[0], len(centroids)))
    for cluster_id, centroid in enumerate(centroids):
        squared[:, cluster_id] = np.sum((vectors - centroid) ** 2, axis=1)
    return np.argmin(squared, axis=1).astype(np.int64)


def _update_centroids(vectors: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Mean of each cluster's members, with farthest-point recovery for empty clusters."""
    updated = centroids.copy()
    empty: List[int] = []
    for cluster_id in range(len(centroids)):
        members = vectors[labels == cluster_id]
        if len(members) > 0:
            updated[cluster_id] = members.mean(axis=0)
        else:
            empty.append(cluster_id)

    if empty:
        distances = np.sum((vectors - updated[labels]) ** 2, axis=1)
        for cluster_id in empty:
            farthest = int(np.argmax(distances))
            updated[cluster_id] = vectors[farthest]
            distances[farthest] = -1.0
        logger.debug(f"Reinitialized empty clusters {empty} at farthest observations")

    return updated


def _seed_sequence(seed: SeedLike) -> np.random.SeedSequence:
    """Fresh SeedSequence so spawning never mutates the caller's object."""
    if isinstance(seed, np.random.SeedSequence):
        return np.random.SeedSequence(
            seed.entropy, spawn_key=seed.spawn_key, pool_size=seed.pool_size
        )
    if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0:
        raise InvalidInputError(f"seed must be a non-negative integer or SeedSequence, got {seed!r}")
    return np.random.SeedSequence(int(seed))


def _validate_k(k: Any, n_observations: int) -> None:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidInputError(f"k must be an integer, got {k!r}")
    if k < 1 or k >= n_observations:
        raise InvalidInputError(
            f"k must satisfy 1 <= k < {n_observations} (number of observations), got {k}",
            details={"k": int(k), "n_observations": n_observations},
        )


def fit_partition(
    matrix: Union[ObservationMatrix, Any],
    k: int,
    restarts: int,
    seed: SeedLike,
    max_iter: int = 300,
) -> PartitionResult:
    """Best-of-``restarts`` K-Means partition of ``matrix``."""
    return PartitionFitter(ClusteringConfig(max_iter=max_iter)).fit(matrix, k, restarts=restarts, seed=seed)
