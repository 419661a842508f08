"""Rule-based fallback scorer.

Combines the scoring primitives into one weighted score per job and
explains the result in plain words. Used whenever AI ranking is disabled,
fails or returns too little.
"""

import logging
import time
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Callable, List, Optional

from jobping.domain.models import Job, MatchMethod, UserPreferences, WorkEnvironment
from jobping.logging import get_logger
from jobping.utils.timestamps import utc_now

from . import scoring
from .distribution import BalancedDistributionSelector
from .models import JobMatch, MatchQuality, ScoreBreakdown
from .tables import MatchingTables, default_tables

MAX_RULE_BASED_CONFIDENCE = 90


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each dimension in the overall score."""

    skills: float = 0.35
    experience: float = 0.25
    location: float = 0.20
    career_path: float = 0.15
    recency: float = 0.05

    @property
    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))


DEFAULT_WEIGHTS = ScoringWeights()

# (threshold, clause) per dimension, first threshold reached wins
_REASON_CLAUSES = (
    ("skills", ((80, "excellent skills alignment"), (60, "strong skills match"),
                (40, "relevant skills found"), (20, "some skill overlap"))),
    ("experience", ((90, "perfect experience level match"), (70, "suitable experience level"),
                    (50, "reasonable experience fit"))),
    ("location", ((90, "ideal location match"), (70, "good location fit"),
                  (40, "acceptable location"))),
    ("career_path", ((80, "excellent career path alignment"), (60, "strong career area match"),
                     (40, "relevant career area"))),
    ("recency", ((80, "very recently posted"), (60, "recently posted"))),
)


class FallbackScorer:
    """
    Weighted multi-factor scorer for jobs.

    Responsibilities:
    - Score each job on skills, experience, location, career path and recency
    - Combine sub-scores with :class:`ScoringWeights` and clamp to [0, 100]
    - Classify match quality and derive a capped confidence score
    - Produce a justification that reflects each dimension's bucket
    - Rank jobs and hand them to the balanced distribution selector
    """

    def __init__(
        self,
        tables: Optional[MatchingTables] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: logging.Logger = None,
    ):
        if abs(weights.total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {weights.total}")
        self.tables = tables or default_tables()
        self.weights = weights
        self.clock = clock
        self.logger = logger_instance or get_logger(__name__, component="matching")
        self.selector = BalancedDistributionSelector(self.tables, self.logger)

    def score_job(self, job: Job, prefs: UserPreferences, now: Optional[datetime] = None) -> JobMatch:
        """Score one job for one user."""
        breakdown = ScoreBreakdown(
            skills=scoring.skills_score(job, prefs, self.tables),
            experience=scoring.experience_score(job, prefs, self.tables),
            location=scoring.location_score(job, prefs, self.tables),
            career_path=scoring.career_path_score(job, prefs, self.tables),
            recency=scoring.recency_score(job, now or self.clock()),
        )

        weighted = sum(
            value * getattr(self.weights, name) for name, value in breakdown.as_dict().items()
        )
        final_score = max(0.0, min(100.0, weighted))
        quality = MatchQuality.from_score(final_score)

        return JobMatch(
            job=job,
            match_score=round(final_score),
            match_reason=self.explain(breakdown, quality, job, prefs),
            method=MatchMethod.FALLBACK,
            confidence_score=min(MAX_RULE_BASED_CONFIDENCE, round(final_score + 3)),
            match_quality=quality,
            breakdown=breakdown,
        )

    def rank(self, jobs: List[Job], prefs: UserPreferences) -> List[JobMatch]:
        """Score every job and sort best first. Ties keep input order."""
        now = self.clock()
        scored = [self.score_job(job, prefs, now) for job in jobs]
        scored.sort(key=lambda match: match.match_score, reverse=True)
        return scored

    def generate_matches(
        self, jobs: List[Job], prefs: UserPreferences, max_matches: int
    ) -> List[JobMatch]:
        """
        Rank jobs and select a balanced result set.

        Args:
            jobs: Candidate jobs
            prefs: User preferences
            max_matches: Result-set size

        Returns:
            Up to ``max_matches`` matches; empty only when ``jobs`` is empty
        """
        started = time.time()
        selected = self.selector.select(self.rank(jobs, prefs), prefs, max_matches)

        average = sum(m.match_score for m in selected) / len(selected) if selected else 0.0
        self.logger.info(
            "Rule-based matching completed",
            extra={
                "event": "matching.fallback.completed",
                "jobs_processed": len(jobs),
                "matches_found": len(selected),
                "average_score": round(average, 1),
                "duration_ms": int((time.time() - started) * 1000),
            },
        )
        return selected

    @staticmethod
    def explain(
        breakdown: ScoreBreakdown, quality: MatchQuality, job: Job, prefs: UserPreferences
    ) -> str:
        """Build the justification string from each sub-score's bucket."""
        scores = breakdown.as_dict()
        reasons = []
        for dimension, buckets in _REASON_CLAUSES:
            for threshold, clause in buckets:
                if scores[dimension] >= threshold:
                    reasons.append(clause)
                    break

        wanted, offered = prefs.work_environment, job.work_environment
        if wanted and offered and (
            wanted == offered
            or (wanted == WorkEnvironment.HYBRID and offered == WorkEnvironment.REMOTE)
        ):
            reasons.append("work environment match")

        if not reasons:
            return f"{job.title} opportunity at {job.company} ({quality.value} match)"
        return ", ".join(reasons) + f" ({quality.value} match)"
