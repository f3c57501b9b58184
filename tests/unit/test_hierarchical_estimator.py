"""
Unit tests for the agglomerative dendrogram builder.

Tests the HierarchicalEstimator class including:
- Merge order and heights for each linkage rule
- Tie-breaking by lowest observation index
- Agreement with scipy's linkage heights
- Diagnostic cuts and cophenetic correlation
"""

import pytest
import numpy as np
from scipy.cluster.hierarchy import linkage as scipy_linkage

from expression_clustering.core.distance_engine import compute_distances
from expression_clustering.core.hierarchical_estimator import (
    SUPPORTED_LINKAGES,
    HierarchicalEstimator,
    build_dendrogram,
)
from expression_clustering.utils.error_handling import InvalidInputError


@pytest.fixture
def line_distances():
    """Four points on a line at 0, 1, 3, 7."""
    return compute_distances([[0.0], [1.0], [3.0], [7.0]])


@pytest.mark.unit
class TestHierarchicalEstimator:
    """Test suite for HierarchicalEstimator."""

    def test_single_linkage(self, line_distances):
        dendrogram = build_dendrogram(line_distances, linkage="single")

        np.testing.assert_allclose(
            dendrogram.merges,
            [
                [0, 1, 1.0, 2],
                [2, 4, 2.0, 3],
                [3, 5, 4.0, 4],
            ],
        )

    def test_complete_linkage(self, line_distances):
        dendrogram = build_dendrogram(line_distances, linkage="complete")

        np.testing.assert_allclose(
            dendrogram.merges,
            [
                [0, 1, 1.0, 2],
                [2, 4, 3.0, 3],
                [3, 5, 7.0, 4],
            ],
        )

    def test_average_linkage(self, line_distances):
        dendrogram = build_dendrogram(line_distances, linkage="average")

        np.testing.assert_allclose(dendrogram.heights, [1.0, 2.5, 17.0 / 3.0])

    def test_default_linkage_is_complete(self, line_distances):
        assert build_dendrogram(line_distances).linkage == "complete"

    def test_ties_go_to_lowest_indices(self):
        """Equally spaced points: every candidate merge has distance 1."""
        distances = compute_distances([[0.0], [1.0], [2.0], [3.0]])

        dendrogram = build_dendrogram(distances, linkage="single")

        np.testing.assert_array_equal(
            dendrogram.merges[:, :2],
            [[0, 1], [2, 4], [3, 5]],
        )
        np.testing.assert_allclose(dendrogram.heights, [1.0, 1.0, 1.0])

    def test_heights_match_scipy(self, sample_matrix):
        distances = compute_distances(sample_matrix)

        for method in SUPPORTED_LINKAGES:
            ours = build_dendrogram(distances, linkage=method)
            reference = scipy_linkage(distances.condensed(), method=method)

            np.testing.assert_allclose(np.sort(ours.heights), np.sort(reference[:, 2]))
            assert ours.merges[-1, 3] == 40

    def test_heights_non_decreasing(self, sample_matrix):
        distances = compute_distances(sample_matrix)

        for method in SUPPORTED_LINKAGES:
            heights = build_dendrogram(distances, linkage=method).heights
            assert np.all(np.diff(heights) >= 0.0)

    def test_labels_at_separates_blobs(self, two_blob_matrix):
        dendrogram = build_dendrogram(compute_distances(two_blob_matrix))

        labels = dendrogram.labels_at(2)

        np.testing.assert_array_equal(labels, [0, 0, 0, 1, 1, 1])

    def test_labels_at_bounds(self, two_blob_matrix):
        dendrogram = build_dendrogram(compute_distances(two_blob_matrix))

        with pytest.raises(InvalidInputError):
            dendrogram.labels_at(0)
        with pytest.raises(InvalidInputError):
            dendrogram.labels_at(7)

    def test_cophenetic_correlation(self, two_blob_matrix):
        distances = compute_distances(two_blob_matrix)
        dendrogram = build_dendrogram(distances)

        assert dendrogram.cophenetic_correlation(distances) > 0.9

    def test_linkage_matrix_is_a_copy(self, line_distances):
        dendrogram = build_dendrogram(line_distances)

        matrix = dendrogram.to_linkage_matrix()
        matrix[0, 2] = 99.0

        assert dendrogram.merges[0, 2] == 1.0

    def test_to_dict(self, line_distances):
        data = build_dendrogram(line_distances, linkage="single").to_dict()

        assert data["linkage"] == "single"
        assert data["n_observations"] == 4
        assert len(data["merges"]) == 3

    def test_accepts_raw_array(self):
        distances = np.array([[0.0, 2.0], [2.0, 0.0]])

        dendrogram = HierarchicalEstimator("average").build(distances)

        np.testing.assert_allclose(dendrogram.merges, [[0, 1, 2.0, 2]])

    def test_unsupported_linkage(self):
        with pytest.raises(InvalidInputError, match="Unsupported linkage"):
            HierarchicalEstimator("ward")

    def test_invalid_distance_matrices(self):
        estimator = HierarchicalEstimator()

        with pytest.raises(InvalidInputError, match="square"):
            estimator.build(np.zeros((2, 3)))
        with pytest.raises(InvalidInputError, match="at least 2"):
            estimator.build(np.zeros((1, 1)))
        with pytest.raises(InvalidInputError, match="symmetric"):
            estimator.build(np.array([[0.0, 1.0], [2.0, 0.0]]))
        with pytest.raises(InvalidInputError, match="non-negative"):
            estimator.build(np.array([[0.0, -1.0], [-1.0, 0.0]]))
