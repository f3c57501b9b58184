"""
data_models.py

Pydantic data models for the model-selection report.

Schema Design:
- Input: the core consumes an in-memory ObservationMatrix, no schema needed
- Output: selection audit (every candidate's score) plus the per-patient
  cluster assignment handed to the clinical join stage
"""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, field_validator


class ConvergenceNotice(BaseModel):
    """Non-fatal convergence warning attached to a candidate."""

    k: int = Field(..., ge=1, description="Candidate cluster count")
    max_iter: int = Field(..., ge=1, description="Iteration cap that was reached")
    restarts: int = Field(..., ge=0, description="Number of restarts that did not converge")
    message: str = Field(..., description="Human-readable warning")


class CandidateScore(BaseModel):
    """Score of one candidate K."""

    k: int = Field(..., ge=1, description="Number of clusters")
    score: float = Field(..., description="inertia + 2 * n_features * k (lower is better)")
    inertia: float = Field(..., ge=0.0, description="Total within-cluster sum of squares")
    n_iter: int = Field(..., ge=0, description="Lloyd iterations of the winning restart")
    converged: bool = Field(..., description="Winning restart stabilized before max_iter")
    cluster_sizes: List[int] = Field(default_factory=list, description="Members per cluster")
    warnings: List[ConvergenceNotice] = Field(default_factory=list, description="Convergence warnings")


class ClusterMembership(BaseModel):
    """Cluster assigned to one observation (patient)."""

    observation_id: str = Field(..., description="Patient identifier")
    cluster_id: int = Field(..., ge=0, description="Cluster id in [0, k)")


class SelectionReport(BaseModel):
    """Full model-selection outcome."""

    selected_k: int = Field(..., ge=1, description="Cluster count with the minimum score")
    selected_score: float = Field(..., description="Score of the selected candidate")
    n_observations: int = Field(..., ge=1, description="Number of observations clustered")
    n_features: int = Field(..., ge=1, description="Number of features (genes)")
    candidates: List[CandidateScore] = Field(..., description="Every candidate, in evaluation order")
    assignments: List[ClusterMembership] = Field(default_factory=list, description="Final labels")
    quality_metrics: Dict[str, float] = Field(default_factory=dict, description="Diagnostic metrics")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Run parameters")

    @field_validator("candidates")
    @classmethod
    def validate_candidates(cls, v: List[CandidateScore]) -> List[CandidateScore]:
        if not v:
            raise ValueError("Report must contain at least one candidate")
        return v

    def score_table(self) -> Dict[int, float]:
        """Candidate k -> score, in evaluation order."""
        return {c.k: c.score for c in self.candidates}

    def candidate(self, k: int) -> Optional[CandidateScore]:
        for c in self.candidates:
            if c.k == k:
                return c
        return None
