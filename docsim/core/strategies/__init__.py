"""Scoring and filtering strategies."""
from .scoring import (
    CandidateFilter,
    CoverageWeightedScoring,
    DocumentHits,
    ScoringStrategy,
    ThresholdCutoffFilter,
    clamp_unit,
)

__all__ = [
    "CandidateFilter",
    "CoverageWeightedScoring",
    "DocumentHits",
    "ScoringStrategy",
    "ThresholdCutoffFilter",
    "clamp_unit",
]
