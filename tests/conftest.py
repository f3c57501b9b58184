"""
Pytest configuration and shared fixtures for expression clustering tests.

This module provides:
- Synthetic observation matrices with known cluster structure
- Clustering configuration fixtures
- Settings and logging isolation between tests
"""

import logging

import numpy as np
import pytest
import structlog


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def two_blob_matrix():
    """
    Six observations, two features: two well-separated blobs of three points.

    Observations 0-2 sit near the origin, observations 3-5 near (10, 10).
    """
    from expression_clustering.core.base_clustering import ObservationMatrix

    values = [
        [0.0, 0.0],
        [0.0, 1.0],
        [1.0, 0.0],
        [10.0, 10.0],
        [10.0, 11.0],
        [11.0, 10.0],
    ]
    return ObservationMatrix(
        values,
        observation_ids=["TCGA-01", "TCGA-02", "TCGA-03", "TCGA-04", "TCGA-05", "TCGA-06"],
        feature_names=["GENE_A", "GENE_B"],
    )


@pytest.fixture
def sample_matrix():
    """Unstructured Gaussian matrix: 40 patients x 5 genes."""
    rng = np.random.default_rng(42)
    return rng.normal(size=(40, 5))


@pytest.fixture
def clustered_matrix():
    """
    Generate observations with clear cluster structure.

    Creates 3 distinct clusters of 30 points in 20 dimensions:
    - Cluster 0: centered at [10, 0, 0, ...]
    - Cluster 1: centered at [0, 10, 0, ...]
    - Cluster 2: centered at [0, 0, 10, ...]
    """
    rng = np.random.default_rng(7)
    n_per_cluster = 30
    dim = 20

    vectors = []
    labels = []
    for cluster_id in range(3):
        center = np.zeros(dim)
        center[cluster_id] = 10.0
        vectors.append(center + rng.normal(scale=0.5, size=(n_per_cluster, dim)))
        labels.extend([cluster_id] * n_per_cluster)

    return np.vstack(vectors), np.array(labels)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def clustering_config():
    """Small clustering configuration for fast tests."""
    from expression_clustering.core.base_clustering import ClusteringConfig

    return ClusteringConfig(
        candidate_ks=[2, 3],
        n_restarts=10,
        max_iter=100,
        random_state=42,
    )


@pytest.fixture
def settings_file(tmp_path):
    """Write a settings YAML file and return its path."""
    path = tmp_path / "settings.yaml"
    path.write_text(
        "clustering:\n"
        "  candidate_ks: [2, 3]\n"
        "  n_restarts: ${TEST_N_RESTARTS:5}\n"
        "  max_iter: 50\n"
        "  random_state: 7\n"
        "hierarchical:\n"
        "  linkage: average\n"
        "logging:\n"
        "  level: debug\n"
        "  format: console\n"
    )
    return path


# =============================================================================
# Cleanup
# =============================================================================

@pytest.fixture(autouse=True)
def reset_global_state():
    """Clear cached settings and structlog configuration around each test."""
    from expression_clustering.config.settings_loader import ConfigManager

    root_level = logging.root.level
    ConfigManager._settings = None
    yield
    ConfigManager._settings = None
    structlog.reset_defaults()
    logging.root.setLevel(root_level)


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
