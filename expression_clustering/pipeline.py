"""
Clustering Pipeline - end-to-end run over one expression matrix.

distances -> dendrogram (diagnostic) -> candidate fits -> AIC-like selection
-> quality metrics and report. Everything is returned as explicit values.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from expression_clustering.config.settings_loader import ConfigManager, Settings, get_settings
from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    as_observation_matrix,
)
from expression_clustering.core.cluster_assigner import ClusterAssigner, FinalAssignment
from expression_clustering.core.diagnostics import quality_metrics
from expression_clustering.core.distance_engine import DistanceMatrix, compute_distances
from expression_clustering.core.hierarchical_estimator import Dendrogram, HierarchicalEstimator
from expression_clustering.schemas.data_models import SelectionReport
from expression_clustering.utils.advanced_logging import configure_logging

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs of one pipeline run."""

    distances: Optional[DistanceMatrix]
    dendrogram: Optional[Dendrogram]
    assignment: FinalAssignment
    report: SelectionReport


class ClusteringPipeline:
    """Runs the diagnostic and model-selection steps with one configuration."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        config: Optional[ClusteringConfig] = None,
    ):
        """
        Args:
            settings: Loaded settings (global settings if both arguments are None)
            config: Explicit clustering configuration, takes precedence over settings
        """
        if config is None:
            settings = settings or get_settings()
            config = ClusteringConfig.from_settings(settings)
        self.config = config
        self.assigner = ClusterAssigner(config)
        self.estimator = HierarchicalEstimator(config.linkage)

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "ClusteringPipeline":
        """Load settings from YAML, configure logging and build the pipeline."""
        settings = ConfigManager.reload_config(config_path)
        configure_logging(
            log_level=settings.logging.level,
            log_format=settings.logging.format,
            log_file=settings.logging.file,
            service_name=settings.service.name,
        )
        return cls(settings=settings)

    def run(
        self,
        matrix: Union[ObservationMatrix, Any],
        candidate_ks: Optional[Sequence[int]] = None,
        build_dendrogram: bool = True,
    ) -> PipelineResult:
        """
        Run the pipeline.

        Args:
            matrix: Observation matrix (patients x genes)
            candidate_ks: Overrides the configured candidate list
            build_dendrogram: Also compute distances and the merge tree

        Returns:
            PipelineResult
        """
        matrix = as_observation_matrix(matrix)

        distances = None
        dendrogram = None
        metadata = {
            "restarts": self.config.n_restarts,
            "max_iter": self.config.max_iter,
            "random_state": self.config.random_state,
        }

        if build_dendrogram:
            distances = compute_distances(matrix, self.config.metric)
            dendrogram = self.estimator.build(distances)
            metadata["linkage"] = self.config.linkage
            metadata["metric"] = self.config.metric
            metadata["cophenetic_correlation"] = dendrogram.cophenetic_correlation(distances)

        assignment = self.assigner.select_best_partition(matrix, candidate_ks)
        metrics = quality_metrics(matrix, assignment.labels, assignment.result.centroids)
        report = assignment.to_report(quality_metrics=metrics, metadata=metadata)

        logger.info(
            f"Pipeline complete: selected k={assignment.k} "
            f"from candidates {list(assignment.scores)}"
        )
        return PipelineResult(
            distances=distances,
            dendrogram=dendrogram,
            assignment=assignment,
            report=report,
        )
