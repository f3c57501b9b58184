"""
Cluster-count diagnostics.

Elbow and silhouette curves plus per-partition quality metrics. These are
the signals an analyst inspects by eye; they are reported next to the
AIC-like selection but never change which K is selected.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union
import numpy as np
from sklearn.metrics import davies_bouldin_score, silhouette_score

from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    as_observation_matrix,
)
from expression_clustering.core.partition_fitter import PartitionFitter, SeedLike

logger = logging.getLogger(__name__)


def quality_metrics(
    matrix: Union[ObservationMatrix, Any],
    labels: np.ndarray,
    centroids: Optional[np.ndarray] = None,
) -> Dict[str, float]:
    """
    Calculate clustering quality metrics.

    Args:
        matrix: Observation matrix
        labels: Cluster labels
        centroids: Optional cluster centroids

    Returns:
        Dictionary of quality metrics
    """
    vectors = as_observation_matrix(matrix).values
    labels = np.asarray(labels)
    metrics: Dict[str, float] = {}

    n_labels = len(np.unique(labels))
    if 1 < n_labels < len(vectors):
        # Silhouette score (higher is better, range: -1 to 1)
        metrics["silhouette_score"] = float(silhouette_score(vectors, labels))
        # Davies-Bouldin Index (lower is better)
        metrics["davies_bouldin_index"] = float(davies_bouldin_score(vectors, labels))

    if centroids is not None:
        distances = np.linalg.norm(vectors - centroids[labels], axis=1)
        metrics["mean_distance_to_centroid"] = float(np.mean(distances))

    return metrics


def elbow_curve(
    matrix: Union[ObservationMatrix, Any],
    ks: Sequence[int],
    restarts: int = 10,
    seed: SeedLike = 42,
    config: Optional[ClusteringConfig] = None,
) -> Dict[int, float]:
    """Best inertia per K, for an elbow plot."""
    matrix = as_observation_matrix(matrix)
    fitter = PartitionFitter(config)
    curve = {k: fitter.fit(matrix, k, restarts=restarts, seed=seed).inertia for k in ks}
    logger.info(f"Elbow curve: {curve}")
    return curve


def silhouette_curve(
    matrix: Union[ObservationMatrix, Any],
    ks: Sequence[int],
    restarts: int = 10,
    seed: SeedLike = 42,
    config: Optional[ClusteringConfig] = None,
) -> Dict[int, float]:
    """
    Silhouette score of the best partition per K.

    Only K >= 2 has a silhouette; K = 1 is skipped.
    """
    matrix = as_observation_matrix(matrix)
    fitter = PartitionFitter(config)
    curve: Dict[int, float] = {}
    for k in ks:
        if k < 2:
            continue
        result = fitter.fit(matrix, k, restarts=restarts, seed=seed)
        metrics = quality_metrics(matrix, result.labels)
        # A degenerate fit can leave fewer than two non-empty clusters
        if "silhouette_score" in metrics:
            curve[k] = metrics["silhouette_score"]
    logger.info(f"Silhouette curve: {curve}")
    return curve
