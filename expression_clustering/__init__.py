"""
Expression clustering.

Cluster-count estimation and K-Means model selection for patients x genes
expression matrices.
"""

from expression_clustering.core import (
    ClusterAssigner,
    ClusteringConfig,
    FinalAssignment,
    ObservationMatrix,
    PartitionFitter,
    PartitionResult,
    select_best_partition,
)
from expression_clustering.utils.error_handling import (
    ClusteringError,
    ConvergenceWarning,
    InvalidInputError,
)

__version__ = "1.0.0"

__all__ = [
    "ClusterAssigner",
    "ClusteringConfig",
    "FinalAssignment",
    "ObservationMatrix",
    "PartitionFitter",
    "PartitionResult",
    "select_best_partition",
    "ClusteringError",
    "ConvergenceWarning",
    "InvalidInputError",
]
