"""
Unit tests for the shared clustering types.

Tests ObservationMatrix validation and PartitionResult accessors.
"""

import pytest
import numpy as np
from expression_clustering.core.base_clustering import (
    ClusteringConfig,
    ObservationMatrix,
    PartitionResult,
    as_observation_matrix,
)
from expression_clustering.utils.error_handling import InvalidInputError


@pytest.mark.unit
class TestObservationMatrix:
    """Test suite for ObservationMatrix."""

    def test_basic_shape(self):
        matrix = ObservationMatrix([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

        assert matrix.shape == (2, 3)
        assert matrix.n_observations == 2
        assert matrix.n_features == 3
        assert len(matrix) == 2
        assert matrix.observation_ids == (0, 1)
        assert matrix.feature_names is None

    def test_values_are_read_only(self):
        source = np.ones((3, 2))
        matrix = ObservationMatrix(source)

        with pytest.raises(ValueError):
            matrix.values[0, 0] = 5.0

        # Caller's array is copied, not borrowed
        source[0, 0] = 5.0
        assert matrix.values[0, 0] == 1.0

    def test_ragged_rows_rejected(self):
        with pytest.raises(InvalidInputError, match="inconsistent lengths"):
            ObservationMatrix([[1.0, 2.0], [3.0]])

    def test_missing_values_rejected(self):
        with pytest.raises(InvalidInputError, match="non-finite"):
            ObservationMatrix([[1.0, np.nan], [3.0, 4.0]])

        with pytest.raises(InvalidInputError):
            ObservationMatrix([[1.0, np.inf], [3.0, 4.0]])

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidInputError, match="not numeric"):
            ObservationMatrix([["a", "b"], ["c", "d"]])

    def test_wrong_dimensionality_rejected(self):
        with pytest.raises(InvalidInputError, match="2-dimensional"):
            ObservationMatrix([1.0, 2.0, 3.0])

        with pytest.raises(InvalidInputError):
            ObservationMatrix(np.zeros((0, 4)))

    def test_observation_ids(self):
        matrix = ObservationMatrix(np.zeros((2, 2)), observation_ids=["P1", "P2"])
        assert matrix.observation_ids == ("P1", "P2")

        with pytest.raises(InvalidInputError, match="unique"):
            ObservationMatrix(np.zeros((2, 2)), observation_ids=["P1", "P1"])

        with pytest.raises(InvalidInputError):
            ObservationMatrix(np.zeros((2, 2)), observation_ids=["P1"])

    def test_feature_names_length(self):
        with pytest.raises(InvalidInputError):
            ObservationMatrix(np.zeros((2, 3)), feature_names=["G1", "G2"])

    def test_from_feature_rows_transposes(self):
        """Expression tables come as genes x patients."""
        genes_by_patients = [
            [1.0, 2.0, 3.0],  # GENE_A
            [4.0, 5.0, 6.0],  # GENE_B
        ]

        matrix = ObservationMatrix.from_feature_rows(
            genes_by_patients,
            feature_names=["GENE_A", "GENE_B"],
            observation_ids=["P1", "P2", "P3"],
        )

        assert matrix.shape == (3, 2)
        np.testing.assert_array_equal(matrix.values[0], [1.0, 4.0])
        assert matrix.observation_ids == ("P1", "P2", "P3")
        assert matrix.feature_names == ("GENE_A", "GENE_B")

    def test_as_observation_matrix_passthrough(self):
        matrix = ObservationMatrix(np.zeros((2, 2)))
        assert as_observation_matrix(matrix) is matrix
        assert isinstance(as_observation_matrix([[1.0], [2.0]]), ObservationMatrix)


@pytest.mark.unit
class TestPartitionResult:
    """Test suite for PartitionResult."""

    def test_accessors(self):
        result = PartitionResult(
            labels=np.array([0, 1, 1, 0, 1]),
            centroids=np.zeros((2, 3)),
            inertia=4.5,
            n_iter=3,
        )

        assert result.k == 2
        assert result.n_features == 3
        np.testing.assert_array_equal(result.cluster_sizes, [2, 3])
        assert set(result.cluster_centroids) == {0, 1}

    def test_to_dict(self):
        result = PartitionResult(
            labels=np.array([0, 0, 1]),
            centroids=np.zeros((2, 2)),
            inertia=1.0,
            converged=False,
            non_converged_restarts=2,
        )

        data = result.to_dict()
        assert data["k"] == 2
        assert data["converged"] is False
        assert data["non_converged_restarts"] == 2
        assert data["cluster_sizes"] == [2, 1]
        assert data["total_items"] == 3


@pytest.mark.unit
def test_clustering_config_defaults():
    config = ClusteringConfig()
    assert config.candidate_ks == [2, 4, 7]
    assert config.n_restarts == 10
    assert config.linkage == "complete"
