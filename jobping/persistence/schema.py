"""ORM models and conversions to domain models.

Timestamps are stored as fixed-width ISO 8601 UTC strings, so string
comparison in queries orders them chronologically.
"""

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from jobping.config.models import Tier
from jobping.domain.models import Job, MatchRecord, UserPreferences
from jobping.utils.timestamps import format_timestamp, parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for users and their stored matching preferences."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, unique=True)
    subscription_tier = Column(String(32), nullable=False, default=Tier.FREE.value)

    target_cities = Column(JSON, nullable=False, default=list)
    career_path = Column(JSON, nullable=False, default=list)
    languages_spoken = Column(JSON, nullable=False, default=list)
    work_environment = Column(String(32), nullable=True)
    entry_level_preference = Column(String(64), nullable=True)
    visa_status = Column(String(255), nullable=True)
    career_keywords = Column(Text, nullable=True)

    created_at = Column(String(50), nullable=False)

    def to_preferences(self) -> UserPreferences:
        return UserPreferences(
            email=self.email,
            user_id=self.id,
            subscription_tier=self.subscription_tier,
            target_cities=self.target_cities or [],
            career_path=self.career_path or [],
            languages_spoken=self.languages_spoken or [],
            work_environment=self.work_environment,
            entry_level_preference=self.entry_level_preference,
            visa_status=self.visa_status,
            career_keywords=self.career_keywords,
        )

    def apply_preferences(self, prefs: UserPreferences) -> None:
        self.email = prefs.email
        self.subscription_tier = prefs.subscription_tier.value
        self.target_cities = list(prefs.target_cities)
        self.career_path = list(prefs.career_path)
        self.languages_spoken = list(prefs.languages_spoken)
        self.work_environment = prefs.work_environment.value if prefs.work_environment else None
        self.entry_level_preference = prefs.entry_level_preference
        self.visa_status = prefs.visa_status
        self.career_keywords = prefs.career_keywords


class JobModel(Base):
    """ORM model for candidate jobs written by the ingestion pipeline."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_hash = Column(String(64), nullable=False, unique=True)

    title = Column(Text, nullable=False)
    company = Column(String(255), nullable=False)
    city = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=False, default="")
    job_url = Column(Text, nullable=True)
    source = Column(String(64), nullable=True)

    categories = Column(JSON, nullable=False, default=list)
    experience_required = Column(String(64), nullable=True)
    is_internship = Column(Boolean, nullable=False, default=False)
    is_graduate = Column(Boolean, nullable=False, default=False)

    work_environment = Column(String(32), nullable=True)
    visa_friendly = Column(Boolean, nullable=False, default=False)
    visa_sponsored = Column(Boolean, nullable=False, default=False)
    language_requirements = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True)
    status = Column(String(32), nullable=False, default="active")
    filtered_reason = Column(String(255), nullable=True)

    posted_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_jobs_candidates", "is_active", "status", "created_at"),
        Index("idx_jobs_city", "city"),
        Index("idx_jobs_posted_at", "posted_at"),
    )

    def to_domain(self) -> Job:
        return Job(
            id=self.id,
            job_hash=self.job_hash,
            title=self.title,
            company=self.company,
            city=self.city,
            country=self.country,
            location=self.location,
            description=self.description or "",
            job_url=self.job_url,
            source=self.source,
            categories=self.categories or [],
            experience_required=self.experience_required,
            is_internship=bool(self.is_internship),
            is_graduate=bool(self.is_graduate),
            work_environment=self.work_environment,
            visa_friendly=bool(self.visa_friendly),
            visa_sponsored=bool(self.visa_sponsored),
            language_requirements=self.language_requirements or [],
            posted_at=parse_iso_datetime(self.posted_at),
            created_at=parse_iso_datetime(self.created_at),
            is_active=bool(self.is_active),
        )

    def apply_domain(self, job: Job) -> None:
        self.job_hash = job.job_hash
        self.title = job.title
        self.company = job.company
        self.city = job.city
        self.country = job.country
        self.location = job.location
        self.description = job.description
        self.job_url = job.job_url
        self.source = job.source
        self.categories = list(job.categories)
        self.experience_required = job.experience_required
        self.is_internship = job.is_internship
        self.is_graduate = job.is_graduate
        self.work_environment = job.work_environment.value if job.work_environment else None
        self.visa_friendly = job.visa_friendly
        self.visa_sponsored = job.visa_sponsored
        self.language_requirements = list(job.language_requirements)
        self.is_active = job.is_active
        self.posted_at = format_timestamp(job.posted_at)
        if job.created_at is not None or self.created_at is None:
            self.created_at = format_timestamp(job.created_at or utc_now())

    @classmethod
    def from_domain(cls, job: Job) -> "JobModel":
        model = cls()
        model.apply_domain(job)
        return model


class UserMatchModel(Base):
    """ORM model for persisted matches. One row per (user, job)."""

    __tablename__ = "user_matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    job_hash = Column(String(64), nullable=True)
    match_score = Column(Float, nullable=False)
    match_reason = Column(Text, nullable=False, default="")
    match_method = Column(String(32), nullable=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="uq_user_matches_user_job"),
        Index("idx_user_matches_user", "user_id"),
    )

    def to_domain(self) -> MatchRecord:
        return MatchRecord(
            user_id=self.user_id,
            job_id=self.job_id,
            job_hash=self.job_hash,
            match_score=self.match_score,
            match_reason=self.match_reason,
            match_method=self.match_method,
            created_at=parse_iso_datetime(self.created_at),
        )

    @classmethod
    def from_domain(cls, record: MatchRecord) -> "UserMatchModel":
        return cls(
            user_id=record.user_id,
            job_id=record.job_id,
            job_hash=record.job_hash,
            match_score=record.match_score,
            match_reason=record.match_reason,
            match_method=record.match_method.value,
            created_at=format_timestamp(record.created_at or utc_now()),
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info(
        "Database schema ready",
        extra={"event": "database.schema.created", "tables": sorted(Base.metadata.tables)},
    )
