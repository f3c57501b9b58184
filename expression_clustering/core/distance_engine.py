"""
Distance Engine.

Computes the pairwise dissimilarity matrix between observations. The result
feeds the hierarchical (dendrogram) diagnostic and external heatmap plots.
"""

import logging
from typing import Any, Union
import numpy as np
from scipy.spatial.distance import pdist, squareform

from expression_clustering.core.base_clustering import ObservationMatrix, as_observation_matrix
from expression_clustering.utils.error_handling import InvalidInputError

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = ("euclidean", "sqeuclidean", "manhattan", "cosine", "correlation")
_SCIPY_METRICS = {
    "euclidean": "euclidean",
    "sqeuclidean": "sqeuclidean",
    "manhattan": "cityblock",
    "cosine": "cosine",
    "correlation": "correlation",
}


class DistanceMatrix:
    """Symmetric, zero-diagonal, non-negative pairwise distances."""

    def __init__(self, values: np.ndarray, metric: str):
        values.setflags(write=False)
        self._values = values
        self.metric = metric

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def n_observations(self) -> int:
        return self._values.shape[0]

    def condensed(self) -> np.ndarray:
        """Upper triangle in row-major order (scipy's condensed form)."""
        rows, cols = np.triu_indices(self.n_observations, k=1)
        return self._values[rows, cols]

    def __getitem__(self, key: Any) -> Any:
        return self._values[key]

    def __len__(self) -> int:
        return self.n_observations


def compute_distances(
    matrix: Union[ObservationMatrix, Any],
    metric: str = "euclidean",
) -> DistanceMatrix:
    """
    Compute pairwise distances between observation vectors.

    Args:
        matrix: Observation matrix (N x D)
        metric: One of SUPPORTED_METRICS

    Returns:
        DistanceMatrix (N x N)

    Raises:
        InvalidInputError: Fewer than 2 observations, ragged rows or unknown metric
    """
    matrix = as_observation_matrix(matrix)

    if metric not in SUPPORTED_METRICS:
        raise InvalidInputError(
            f"Unsupported metric '{metric}'. Supported: {list(SUPPORTED_METRICS)}"
        )
    if matrix.n_observations < 2:
        raise InvalidInputError(
            f"Need at least 2 observations to compute distances, got {matrix.n_observations}",
            details={"n_observations": matrix.n_observations},
        )

    # Constant rows have no defined correlation/cosine distance
    if metric in ("cosine", "correlation"):
        vectors = matrix.values
        if metric == "correlation":
            vectors = vectors - vectors.mean(axis=1, keepdims=True)
        degenerate = np.where(np.linalg.norm(vectors, axis=1) == 0)[0]
        if len(degenerate) > 0:
            raise InvalidInputError(
                f"{metric} distance is undefined for zero-variance observations",
                details={"rows": degenerate[:10].tolist()},
            )

    distances = squareform(pdist(matrix.values, metric=_SCIPY_METRICS[metric]))
    np.fill_diagonal(distances, 0.0)
    np.maximum(distances, 0.0, out=distances)

    logger.debug(
        f"Computed {metric} distances for {matrix.n_observations} observations"
    )

    return DistanceMatrix(distances, metric)
