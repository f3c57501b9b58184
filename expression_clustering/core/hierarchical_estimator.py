"""
Agglomerative Hierarchical Clustering (dendrogram diagnostic).

Builds the full merge tree over a distance matrix so the number of clusters
can be inspected visually. The tree is descriptive only: model selection in
ClusterAssigner never reads it.

Supported linkage rules:
- single: distance between the closest members
- complete: distance between the farthest members
- average: mean pairwise distance (UPGMA)
"""

import logging
from typing import Any, Union
import numpy as np
from scipy.cluster.hierarchy import cophenet, fcluster

from expression_clustering.core.distance_engine import DistanceMatrix
from expression_clustering.utils.advanced_logging import timed
from expression_clustering.utils.error_handling import InvalidInputError

logger = logging.getLogger(__name__)

SUPPORTED_LINKAGES = ("complete", "average", "single")


class Dendrogram:
    """
    Binary merge tree over observation indices.

    Each row of ``merges`` is ``[left_node, right_node, height, size]``.
    Leaves are nodes ``0..n-1``; the merge recorded at step t creates node
    ``n + t``. Heights are non-decreasing from leaves to root.
    """

    def __init__(self, merges: np.ndarray, n_observations: int, linkage: str):
        merges.setflags(write=False)
        self.merges = merges
        self.n_observations = n_observations
        self.linkage = linkage

    @property
    def heights(self) -> np.ndarray:
        return self.merges[:, 2]

    def to_linkage_matrix(self) -> np.ndarray:
        """Copy in the layout scipy.cluster.hierarchy.dendrogram draws."""
        return np.array(self.merges, dtype=np.float64)

    def labels_at(self, n_clusters: int) -> np.ndarray:
        """
        Cut the tree into at most ``n_clusters`` groups (diagnostic comparison only).

        Returns:
            Labels numbered from 0 by first appearance
        """
        if n_clusters < 1 or n_clusters > self.n_observations:
            raise InvalidInputError(
                f"n_clusters must be in [1, {self.n_observations}], got {n_clusters}"
            )
        raw = fcluster(self.to_linkage_matrix(), t=n_clusters, criterion="maxclust")
        _, first_seen, inverse = np.unique(raw, return_index=True, return_inverse=True)
        order = np.argsort(np.argsort(first_seen))
        return order[inverse].astype(np.int64)

    def cophenetic_correlation(self, distances: DistanceMatrix) -> float:
        """Correlation between input distances and merge heights."""
        coefficient, _ = cophenet(self.to_linkage_matrix(), distances.condensed())
        return float(coefficient)

    def to_dict(self) -> dict[str, Any]:
        return {
            "linkage": self.linkage,
            "n_observations": self.n_observations,
            "merges": self.merges.tolist(),
        }


class HierarchicalEstimator:
    """
    Agglomerative clustering over a precomputed distance matrix.

    Ties between equally close pairs go to the pair with the lowest
    observation indices, where a cluster is identified by its lowest member.
    """

    def __init__(self, linkage: str = "complete"):
        if linkage not in SUPPORTED_LINKAGES:
            raise InvalidInputError(
                f"Unsupported linkage '{linkage}'. Supported: {list(SUPPORTED_LINKAGES)}"
            )
        self.linkage = linkage

    @timed(operation="build_dendrogram", log_level="debug")
    def build(self, distances: Union[DistanceMatrix, np.ndarray]) -> Dendrogram:
        """
        Merge clusters until one remains.

        Args:
            distances: Pairwise distance matrix (N x N)

        Returns:
            Dendrogram with N-1 merges
        """
        values = distances.values if isinstance(distances, DistanceMatrix) else np.asarray(distances, dtype=np.float64)
        n = _validate_square(values)

        if n > 5000:
            logger.warning(
                f"Agglomerative clustering on {n} observations "
                "is O(n^3) and may be slow."
            )

        # Slot i always holds the cluster whose lowest member is observation i
        work = np.array(values, dtype=np.float64)
        np.fill_diagonal(work, np.inf)
        active = np.ones(n, dtype=bool)
        sizes = np.ones(n, dtype=np.int64)
        node_ids = np.arange(n)
        upper = np.triu(np.ones((n, n), dtype=bool), k=1)

        merges = np.zeros((n - 1, 4), dtype=np.float64)
        for step in range(n - 1):
            candidates = np.where(upper & active[:, None] & active[None, :], work, np.inf)
            i, j = np.unravel_index(np.argmin(candidates), candidates.shape)
            height = candidates[i, j]

            left, right = sorted((node_ids[i], node_ids[j]))
            merges[step] = (left, right, height, sizes[i] + sizes[j])

            work[i, :] = self._merged_distances(work, i, j, sizes)
            work[:, i] = work[i, :]
            work[i, i] = np.inf

            active[j] = False
            sizes[i] += sizes[j]
            node_ids[i] = n + step

        # Keep heights monotone against floating-point round-off in averages
        merges[:, 2] = np.maximum.accumulate(merges[:, 2])

        logger.info(
            f"Built {self.linkage}-linkage dendrogram over {n} observations "
            f"(root height={merges[-1, 2]:.4f})"
        )
        return Dendrogram(merges, n, self.linkage)

    def _merged_distances(self, work: np.ndarray, i: int, j: int, sizes: np.ndarray) -> np.ndarray:
        """Lance-Williams update: distance from the merged cluster to every slot."""
        if self.linkage == "single":
            return np.minimum(work[i], work[j])
        if self.linkage == "complete":
            return np.maximum(work[i], work[j])
        return (sizes[i] * work[i] + sizes[j] * work[j]) / (sizes[i] + sizes[j])


def build_dendrogram(
    distances: Union[DistanceMatrix, np.ndarray],
    linkage: str = "complete",
) -> Dendrogram:
    """Build the agglomerative merge tree for ``distances``."""
    return HierarchicalEstimator(linkage).build(distances)


def _validate_square(values: np.ndarray) -> int:
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise InvalidInputError(
            f"Distance matrix must be square, got shape {values.shape}"
        )
    n = values.shape[0]
    if n < 2:
        raise InvalidInputError(f"Need at least 2 observations to build a dendrogram, got {n}")
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        raise InvalidInputError("Distance matrix must be finite and non-negative")
    if not np.allclose(values, values.T):
        raise InvalidInputError("Distance matrix must be symmetric")
    return n
