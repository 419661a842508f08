"""Data models shared by the rule-based scorer and the AI ranking adapter."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from jobping.domain.models import Job, MatchMethod, MatchRecord


class MatchQuality(str, Enum):
    """Quality bucket for a rule-based score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "MatchQuality":
        if score >= 75:
            return cls.EXCELLENT
        if score >= 60:
            return cls.GOOD
        if score >= 40:
            return cls.FAIR
        return cls.LOW


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-dimension sub-scores, each in [0, 100]."""

    skills: float
    experience: float
    location: float
    career_path: float
    recency: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "skills": self.skills,
            "experience": self.experience,
            "location": self.location,
            "career_path": self.career_path,
            "recency": self.recency,
        }


@dataclass
class JobMatch:
    """A job selected for a user, whichever path produced it.

    Attributes:
        job: The matched job
        match_score: Score on the 0-100 scale
        match_reason: Human-readable justification
        method: AI or rule-based fallback
        confidence_score: Producer's confidence on the 0-100 scale
        match_quality: Quality bucket (rule-based matches only)
        breakdown: Per-dimension sub-scores (rule-based matches only)
    """

    job: Job
    match_score: float
    match_reason: str
    method: MatchMethod
    confidence_score: float = 0.0
    match_quality: Optional[MatchQuality] = None
    breakdown: Optional[ScoreBreakdown] = None

    def to_record(self, user_id: int) -> MatchRecord:
        """Convert to the persistence shape; the score is normalized to 0-1 there."""
        if self.job.id is None:
            raise ValueError(f"Job {self.job.job_hash} has no storage id")
        return MatchRecord(
            user_id=user_id,
            job_id=self.job.id,
            job_hash=self.job.job_hash,
            match_score=self.match_score,
            match_reason=self.match_reason,
            match_method=self.method,
        )
