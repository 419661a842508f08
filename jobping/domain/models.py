"""Core domain models for users, jobs and persisted matches.

- UserPreferences: what a user asked for at signup
- Job: candidate posting produced by the ingestion pipeline
- MatchRecord: one (user, job) match as handed to persistence
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from jobping.config.models import Tier
from jobping.utils.hashing import compute_job_hash
from jobping.utils.timestamps import ensure_utc

# Visa answers that mean the user does not need sponsorship
NO_VISA_NEEDED = frozenset({
    "", "no", "none", "not required", "not-required", "eu citizen", "eu-citizen", "citizen",
})

_WORK_ENVIRONMENT_ALIASES = {
    "onsite": "on-site",
    "on site": "on-site",
    "office": "on-site",
    "in-office": "on-site",
    "in office": "on-site",
    "remote-first": "remote",
    "fully remote": "remote",
}


class WorkEnvironment(str, Enum):
    """Where the work happens."""

    REMOTE = "remote"
    HYBRID = "hybrid"
    ON_SITE = "on-site"
    UNCLEAR = "unclear"

    @classmethod
    def parse(cls, value) -> Optional["WorkEnvironment"]:
        """Map free-form labels onto the enum; unknown labels become None."""
        if value is None or isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        if not label:
            return None
        label = _WORK_ENVIRONMENT_ALIASES.get(label, label)
        try:
            return cls(label)
        except ValueError:
            return None


class MatchMethod(str, Enum):
    """How a match was produced."""

    AI = "ai"
    FALLBACK = "fallback"
    IDEMPOTENT = "idempotent"


def _clean_list(values) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    cleaned = []
    for value in values:
        stripped = str(value).strip()
        if stripped and stripped.lower() not in (v.lower() for v in cleaned):
            cleaned.append(stripped)
    return cleaned


class UserPreferences(BaseModel):
    """Career preferences submitted at signup.

    Free-tier users only provide cities and a single career path. The
    remaining attributes are premium-only and must not influence free-tier
    matching; use :meth:`for_free_tier` before handing preferences to any
    free-tier component.
    """

    email: EmailStr = Field(..., description="Unique user identifier and idempotency key")
    user_id: Optional[int] = Field(None, description="Storage identifier when already known")
    target_cities: List[str] = Field(default_factory=list, max_length=3)
    career_path: List[str] = Field(default_factory=list, max_length=2)
    subscription_tier: Tier = Tier.FREE

    # Premium-only attributes
    languages_spoken: List[str] = Field(default_factory=list)
    work_environment: Optional[WorkEnvironment] = None
    entry_level_preference: Optional[str] = None
    visa_status: Optional[str] = None
    career_keywords: Optional[str] = Field(
        None, description="Comma-separated skills and keywords"
    )

    @field_validator("target_cities", "career_path", "languages_spoken", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> List[str]:
        """Accept comma strings or lists; strip, drop blanks and case-insensitive duplicates."""
        return _clean_list(v)

    @field_validator("work_environment", mode="before")
    @classmethod
    def parse_work_environment(cls, v):
        return WorkEnvironment.parse(v)

    @field_validator("entry_level_preference", "visa_status", "career_keywords")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @property
    def primary_career_path(self) -> Optional[str]:
        return self.career_path[0] if self.career_path else None

    @property
    def needs_visa_sponsorship(self) -> bool:
        """Whether the stated visa status requires a visa-friendly employer."""
        if not self.visa_status:
            return False
        return self.visa_status.strip().lower() not in NO_VISA_NEEDED

    @property
    def keyword_list(self) -> List[str]:
        if not self.career_keywords:
            return []
        return [k.strip().lower() for k in self.career_keywords.split(",") if k.strip()]

    def for_free_tier(self) -> "UserPreferences":
        """Copy carrying only the attributes free-tier matching may read."""
        return self.model_copy(
            update={
                "career_path": self.career_path[:1],
                "subscription_tier": Tier.FREE,
                "languages_spoken": [],
                "work_environment": None,
                "entry_level_preference": None,
                "visa_status": None,
                "career_keywords": None,
            }
        )

    model_config = {"json_schema_extra": {"example": {
        "email": "jane@example.com",
        "target_cities": ["London", "Berlin"],
        "career_path": ["tech-transformation"],
        "subscription_tier": "premium",
        "languages_spoken": ["English", "German"],
        "work_environment": "hybrid",
        "entry_level_preference": "entry-level",
        "visa_status": "sponsorship required",
        "career_keywords": "python, sql, dashboards",
    }}}


class Job(BaseModel):
    """Candidate job posting. Read-only from the matching core's perspective."""

    id: Optional[int] = Field(None, description="Storage identifier")
    job_hash: str = Field("", description="Content-derived stable identifier")
    title: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    city: Optional[str] = None
    country: Optional[str] = None
    location: Optional[str] = Field(None, description="Free-form location as posted")
    description: str = ""
    job_url: Optional[str] = None
    source: Optional[str] = Field(None, description="Board or scraper the job came from")

    categories: List[str] = Field(default_factory=list)
    experience_required: Optional[str] = None
    is_internship: bool = False
    is_graduate: bool = False

    work_environment: Optional[WorkEnvironment] = None
    visa_friendly: bool = False
    visa_sponsored: bool = False
    language_requirements: List[str] = Field(default_factory=list)

    posted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("title", "company")
    @classmethod
    def strip_required(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped

    @field_validator("city", "country", "location", "job_url", "experience_required", "source")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("categories", "language_requirements", mode="before")
    @classmethod
    def normalize_lists(cls, v) -> List[str]:
        return _clean_list(v)

    @field_validator("work_environment", mode="before")
    @classmethod
    def parse_work_environment(cls, v):
        return WorkEnvironment.parse(v)

    @field_validator("posted_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @model_validator(mode="after")
    def fill_job_hash(self):
        if not self.job_hash:
            self.job_hash = compute_job_hash(self.title, self.company, self.city, self.job_url)
        return self

    @property
    def dedupe_key(self) -> str:
        """Key used to detect the same posting twice in one result set."""
        return self.job_url or self.job_hash

    @property
    def offers_visa_support(self) -> bool:
        return self.visa_friendly or self.visa_sponsored

    @property
    def label(self) -> str:
        """Title-company pair used in prompts and cache keys."""
        return f"{self.title}-{self.company}"

    model_config = {"json_schema_extra": {"example": {
        "title": "Graduate Data Analyst",
        "company": "Example Corp",
        "city": "Berlin",
        "country": "Germany",
        "description": "Join our analytics team...",
        "job_url": "https://jobs.example.com/123",
        "categories": ["data-analytics"],
        "experience_required": "entry-level",
        "work_environment": "hybrid",
        "visa_friendly": True,
        "posted_at": "2025-11-01T12:00:00Z",
    }}}


class MatchRecord(BaseModel):
    """One persisted match row.

    Scores computed on the 0-100 scale are normalized to 0-1 here, so
    everything below the persistence boundary sees a single scale.
    """

    user_id: int
    job_id: int
    job_hash: Optional[str] = None
    match_score: float = Field(..., description="Normalized 0-1 score")
    match_reason: str = ""
    match_method: MatchMethod = MatchMethod.FALLBACK
    created_at: Optional[datetime] = None

    @field_validator("match_score", mode="before")
    @classmethod
    def normalize_score(cls, v) -> float:
        score = float(v)
        if score > 1:
            score = score / 100.0
        return min(1.0, max(0.0, score))

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
