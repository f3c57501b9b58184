"""
Base Clustering Types.

Defines the values passed between the clustering components:
- ObservationMatrix: validated, read-only patients x genes matrix
- PartitionResult: labels, centroids and inertia of one partition
- ClusteringConfig: run parameters shared by the fitters
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import numpy as np

from expression_clustering.utils.error_handling import InvalidInputError


@dataclass
class ClusteringConfig:
    """Configuration for partition fitting and model selection."""

    candidate_ks: List[int] = field(default_factory=lambda: [2, 4, 7])
    n_restarts: int = 10
    max_iter: int = 300
    random_state: int = 42
    n_jobs: int = 1
    metric: str = "euclidean"
    linkage: str = "complete"

    @classmethod
    def from_settings(cls, settings: Any) -> "ClusteringConfig":
        """Build from a loaded Settings object."""
        return cls(
            candidate_ks=list(settings.clustering.candidate_ks),
            n_restarts=settings.clustering.n_restarts,
            max_iter=settings.clustering.max_iter,
            random_state=settings.clustering.random_state,
            n_jobs=settings.clustering.n_jobs,
            metric=settings.hierarchical.metric,
            linkage=settings.hierarchical.linkage,
        )


class ObservationMatrix:
    """
    Ordered observation vectors (rows = patients, columns = genes).

    All rows have the same length and every value is finite. The values are
    copied into a read-only float64 array, so the matrix can be shared across
    threads without synchronisation.
    """

    def __init__(
        self,
        values: Any,
        observation_ids: Optional[Sequence[Any]] = None,
        feature_names: Optional[Sequence[str]] = None,
    ):
        array = _to_float_array(values)

        if array.ndim != 2:
            raise InvalidInputError(
                f"Observation matrix must be 2-dimensional, got {array.ndim} dimension(s)",
                details={"shape": list(array.shape)},
            )
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise InvalidInputError(
                "Observation matrix must have at least one observation and one feature",
                details={"shape": list(array.shape)},
            )
        if not np.all(np.isfinite(array)):
            bad_rows = np.unique(np.where(~np.isfinite(array))[0])
            raise InvalidInputError(
                "Observation matrix contains missing or non-finite values",
                details={"rows": bad_rows[:10].tolist()},
            )

        n_obs, n_features = array.shape

        if observation_ids is None:
            observation_ids = range(n_obs)
        observation_ids = tuple(observation_ids)
        if len(observation_ids) != n_obs:
            raise InvalidInputError(
                f"Got {len(observation_ids)} observation ids for {n_obs} observations"
            )
        if len(set(observation_ids)) != n_obs:
            raise InvalidInputError("Observation ids must be unique")

        if feature_names is not None:
            feature_names = tuple(feature_names)
            if len(feature_names) != n_features:
                raise InvalidInputError(
                    f"Got {len(feature_names)} feature names for {n_features} features"
                )

        array = array.copy()
        array.setflags(write=False)

        self._values = array
        self.observation_ids: Tuple[Any, ...] = observation_ids
        self.feature_names: Optional[Tuple[str, ...]] = feature_names

    @classmethod
    def from_feature_rows(
        cls,
        values: Any,
        feature_names: Optional[Sequence[str]] = None,
        observation_ids: Optional[Sequence[Any]] = None,
    ) -> "ObservationMatrix":
        """
        Build from a genes x patients table (the expression file layout).

        Args:
            values: One row per gene, one column per patient
            feature_names: Gene names, one per input row
            observation_ids: Patient identifiers, one per input column

        Returns:
            ObservationMatrix with rows = patients, columns = genes
        """
        array = _to_float_array(values)
        if array.ndim != 2:
            raise InvalidInputError(
                f"Expression table must be 2-dimensional, got {array.ndim} dimension(s)"
            )
        return cls(array.T, observation_ids=observation_ids, feature_names=feature_names)

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def n_observations(self) -> int:
        return self._values.shape[0]

    @property
    def n_features(self) -> int:
        return self._values.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    def __len__(self) -> int:
        return self.n_observations

    def __repr__(self) -> str:
        return f"ObservationMatrix(n_observations={self.n_observations}, n_features={self.n_features})"


def as_observation_matrix(matrix: Union[ObservationMatrix, Any]) -> ObservationMatrix:
    """Wrap raw array-likes; pass ObservationMatrix instances through."""
    if isinstance(matrix, ObservationMatrix):
        return matrix
    return ObservationMatrix(matrix)


def _to_float_array(values: Any) -> np.ndarray:
    if isinstance(values, (list, tuple)) and values and isinstance(values[0], (list, tuple, np.ndarray)):
        lengths = {len(row) for row in values}
        if len(lengths) > 1:
            raise InvalidInputError(
                "Observation vectors have inconsistent lengths",
                details={"lengths": sorted(lengths)},
            )
    try:
        return np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Observation values are not numeric: {e}")


class PartitionResult:
    """Results from one partitional clustering fit."""

    def __init__(
        self,
        labels: np.ndarray,
        centroids: np.ndarray,
        inertia: float,
        n_iter: int = 0,
        converged: bool = True,
        restart: int = 0,
        non_converged_restarts: int = 0,
    ):
        self.labels = labels
        self.centroids = centroids
        self.inertia = inertia
        self.n_iter = n_iter
        self.converged = converged
        self.restart = restart
        self.non_converged_restarts = non_converged_restarts

    @property
    def k(self) -> int:
        """Number of clusters (one centroid per cluster)."""
        return len(self.centroids)

    @property
    def n_features(self) -> int:
        return self.centroids.shape[1]

    @property
    def cluster_sizes(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=self.k)

    @property
    def cluster_centroids(self) -> Dict[int, np.ndarray]:
        """Return centroids as dict mapping cluster_id -> centroid_vector."""
        return {i: self.centroids[i] for i in range(len(self.centroids))}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k": self.k,
            "inertia": self.inertia,
            "n_iter": self.n_iter,
            "converged": self.converged,
            "restart": self.restart,
            "non_converged_restarts": self.non_converged_restarts,
            "cluster_sizes": self.cluster_sizes.tolist(),
            "total_items": len(self.labels),
        }
