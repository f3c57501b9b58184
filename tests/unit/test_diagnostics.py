"""
Unit tests for cluster-count diagnostics.
"""

import pytest
import numpy as np
from expression_clustering.core.diagnostics import elbow_curve, quality_metrics, silhouette_curve


@pytest.mark.unit
class TestQualityMetrics:
    """Test suite for quality_metrics."""

    def test_separated_blobs(self, two_blob_matrix):
        labels = np.array([0, 0, 0, 1, 1, 1])
        centroids = np.array([[1 / 3, 1 / 3], [31 / 3, 31 / 3]])

        metrics = quality_metrics(two_blob_matrix, labels, centroids)

        assert metrics["silhouette_score"] > 0.8
        assert metrics["davies_bouldin_index"] < 0.2
        assert metrics["mean_distance_to_centroid"] == pytest.approx(
            np.mean(np.linalg.norm(two_blob_matrix.values - centroids[labels], axis=1))
        )

    def test_single_cluster_has_no_silhouette(self, sample_matrix):
        metrics = quality_metrics(sample_matrix, np.zeros(40, dtype=int))

        assert "silhouette_score" not in metrics
        assert "davies_bouldin_index" not in metrics

    def test_without_centroids(self, sample_matrix):
        labels = np.arange(40) % 2

        metrics = quality_metrics(sample_matrix, labels)

        assert "mean_distance_to_centroid" not in metrics
        assert -1.0 <= metrics["silhouette_score"] <= 1.0


@pytest.mark.unit
class TestCurves:
    """Test suite for elbow and silhouette curves."""

    def test_elbow_curve(self, clustered_matrix):
        vectors, _ = clustered_matrix

        curve = elbow_curve(vectors, [1, 2, 3], restarts=20, seed=0)

        assert list(curve) == [1, 2, 3]
        assert curve[1] > curve[2] > curve[3]
        # The drop after the true K is small compared to the drops before it
        beyond = elbow_curve(vectors, [4], restarts=20, seed=0)[4]
        assert curve[1] - curve[3] > 10 * (curve[3] - beyond)

    def test_silhouette_curve_peaks_at_true_k(self, clustered_matrix):
        vectors, _ = clustered_matrix

        curve = silhouette_curve(vectors, [1, 2, 3, 4], restarts=20, seed=0)

        assert 1 not in curve
        assert max(curve, key=curve.get) == 3

    def test_curves_reproducible(self, sample_matrix):
        assert elbow_curve(sample_matrix, [2, 3], restarts=3, seed=4) == elbow_curve(
            sample_matrix, [2, 3], restarts=3, seed=4
        )
