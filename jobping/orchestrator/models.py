"""Result model for a signup matching run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from jobping.config.models import Tier
from jobping.domain.models import MatchMethod
from jobping.matching.models import JobMatch
from jobping.strategies.models import StrategyMethod


class MatchingStatus(str, Enum):
    """Terminal state of a matching run."""

    MATCHED = "matched"
    IDEMPOTENT = "idempotent"
    NO_JOBS_AVAILABLE = "no_jobs_available"
    NO_MATCHING_JOBS = "no_matching_jobs"
    DATABASE_ERROR = "database_error"


@dataclass
class MatchingOutcome:
    """
    What a signup matching run did.

    Attributes:
        success: False only for database failures the caller should surface
        status: Terminal state of the run
        tier: Tier the run was executed for
        method: ai, fallback or idempotent; None when nothing was ranked
        strategy_method: Path taken inside the tier strategy
        match_count: Matches produced (or already persisted, when idempotent)
        matches: Matches computed in this run, best first
        persisted: Whether the computed matches were durably written
        error: Technical error description, when any
        message: User-facing summary
        duration_seconds: Wall time of the run
        request_id: Correlation id carried in every log line of the run
    """

    success: bool
    status: MatchingStatus
    tier: Tier
    method: Optional[MatchMethod] = None
    strategy_method: Optional[StrategyMethod] = None
    match_count: int = 0
    matches: List[JobMatch] = field(default_factory=list)
    persisted: bool = False
    error: Optional[str] = None
    message: Optional[str] = None
    duration_seconds: float = 0.0
    request_id: Optional[str] = None
