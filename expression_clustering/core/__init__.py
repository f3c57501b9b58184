"""
Core clustering module.

Exports:
- ClusterAssigner: Model selection over candidate K values
- PartitionFitter: Multi-restart K-Means for a fixed K
- CandidateScorer: AIC-like scoring and selection
- HierarchicalEstimator: Dendrogram diagnostic
- compute_distances: Pairwise distance matrix
- Shared data types
"""

from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    PartitionResult,
)
from expression_clustering.core.distance_engine import DistanceMatrix, compute_distances
from expression_clustering.core.hierarchical_estimator import (
    Dendrogram,
    HierarchicalEstimator,
    build_dendrogram,
)
from expression_clustering.core.partition_fitter import PartitionFitter, fit_partition
from expression_clustering.core.candidate_scorer import (
    CandidateScorer,
    ScoredCandidate,
    score_partition,
)
from expression_clustering.core.cluster_assigner import (
    ClusterAssigner,
    FinalAssignment,
    select_best_partition,
)

__all__ = [
    "ClusteringConfig",
    "ObservationMatrix",
    "PartitionResult",
    "DistanceMatrix",
    "compute_distances",
    "Dendrogram",
    "HierarchicalEstimator",
    "build_dendrogram",
    "PartitionFitter",
    "fit_partition",
    "CandidateScorer",
    "ScoredCandidate",
    "score_partition",
    "ClusterAssigner",
    "FinalAssignment",
    "select_best_partition",
]
