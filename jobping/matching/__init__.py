"""Rule-based matching: scoring primitives, fallback scorer and balanced selection.

This package provides:
- MatchingTables: reference data (synonyms, career paths, locations, seniority)
- Scoring primitives for skills, experience, location, career path and recency
- FallbackScorer: weighted scorer producing JobMatch results
- BalancedDistributionSelector: fair result shaping across cities and paths
"""

from .distribution import BalancedDistributionSelector
from .fallback import DEFAULT_WEIGHTS, FallbackScorer, ScoringWeights
from .models import JobMatch, MatchQuality, ScoreBreakdown
from .tables import MatchingTables, default_tables, load_tables

__all__ = [
    "BalancedDistributionSelector",
    "FallbackScorer",
    "ScoringWeights",
    "DEFAULT_WEIGHTS",
    "JobMatch",
    "MatchQuality",
    "ScoreBreakdown",
    "MatchingTables",
    "default_tables",
    "load_tables",
]
