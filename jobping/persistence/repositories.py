"""Data access layer (repositories) for persistence operations.

Repositories wrap a session, encapsulate queries for users, candidate jobs
and persisted matches, and return domain models rather than ORM models.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobping.domain.models import Job, MatchRecord, UserPreferences
from jobping.logging import get_logger, mask_email
from jobping.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError
from .schema import JobModel, UserMatchModel, UserModel

logger = get_logger(__name__, component="persistence")


def city_variants(cities: Iterable[str]) -> List[str]:
    """Case variants of each city so equality filters tolerate stored casing."""
    variants: List[str] = []
    for city in cities:
        stripped = city.strip()
        if not stripped:
            continue
        for variant in (stripped, stripped.lower(), stripped.upper(), stripped.title()):
            if variant not in variants:
                variants.append(variant)
    return variants


class UserRepository:
    """Repository for users and their stored preferences."""

    def __init__(self, session: Session):
        self.session = session

    def _model_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(func.lower(UserModel.email) == email.strip().lower())
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> Optional[int]:
        """Resolve a user's storage identifier from their email.

        Returns:
            User id if the user exists, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self._model_by_email(email)
            return model.id if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {mask_email(email)}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def exists(self, user_id: int) -> bool:
        try:
            return self.session.get(UserModel, user_id) is not None
        except SQLAlchemyError as e:
            logger.error(f"Error checking user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check user: {e}") from e

    def get_preferences(self, email: str) -> Optional[UserPreferences]:
        """Load stored preferences, or None if the user is unknown."""
        try:
            model = self._model_by_email(email)
            return model.to_preferences() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error loading preferences for {mask_email(email)}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load preferences: {e}") from e

    def upsert(self, prefs: UserPreferences) -> UserPreferences:
        """Insert a new user or update the stored preferences of an existing one.

        Returns:
            Preferences carrying the storage identifier

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            existing = self._model_by_email(prefs.email)

            if existing:
                existing.apply_preferences(prefs)
                self.session.flush()
                return existing.to_preferences()

            model = UserModel(created_at=format_timestamp(utc_now()))
            model.apply_preferences(prefs)
            self.session.add(model)
            self.session.flush()
            return model.to_preferences()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting user {mask_email(prefs.email)}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {mask_email(prefs.email)}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e


class JobRepository:
    """Repository for candidate jobs."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_hash(self, job_hash: str) -> Optional[Job]:
        try:
            stmt = select(JobModel).where(JobModel.job_hash == job_hash)
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job by hash {job_hash}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

    def fetch_candidates(
        self,
        freshness_date: datetime,
        max_rows: int,
        city_filter: Optional[Sequence[str]] = None,
    ) -> List[Job]:
        """Fetch matchable jobs posted since ``freshness_date``.

        Jobs without a known post date count as fresh. Only active jobs that
        were not filtered out at ingestion are returned, newest first.

        Args:
            freshness_date: Oldest acceptable posted_at (UTC)
            max_rows: Upper bound on rows scanned
            city_filter: Optional list of cities; matched with case variants

        Returns:
            List of Job domain models (possibly empty)

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            cutoff_str = format_timestamp(freshness_date)
            stmt = select(JobModel).where(
                JobModel.is_active.is_(True),
                JobModel.status == "active",
                JobModel.filtered_reason.is_(None),
                or_(JobModel.posted_at >= cutoff_str, JobModel.posted_at.is_(None)),
            )

            variants = city_variants(city_filter or [])
            if variants:
                stmt = stmt.where(JobModel.city.in_(variants))

            stmt = stmt.order_by(JobModel.created_at.desc(), JobModel.id.desc()).limit(max_rows)
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]

        except SQLAlchemyError as e:
            logger.error(f"Error fetching candidate jobs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to fetch candidate jobs: {e}") from e

    def upsert(self, job: Job) -> Job:
        """Insert a new job or update the existing row with the same hash."""
        try:
            existing = self.session.execute(
                select(JobModel).where(JobModel.job_hash == job.job_hash)
            ).scalar_one_or_none()

            if existing:
                existing.apply_domain(job)
                self.session.flush()
                return existing.to_domain()

            model = JobModel.from_domain(job)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting job {job.job_hash}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert job due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting job {job.job_hash}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert job: {e}") from e


class MatchRepository:
    """Repository for persisted (user, job) matches."""

    def __init__(self, session: Session):
        self.session = session

    def count_for_user(self, user_id: int) -> int:
        try:
            stmt = select(func.count()).select_from(UserMatchModel).where(
                UserMatchModel.user_id == user_id
            )
            return int(self.session.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            logger.error(f"Error counting matches for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count matches: {e}") from e

    def list_for_user(self, user_id: int) -> List[MatchRecord]:
        """Persisted matches for a user, best score first."""
        try:
            stmt = (
                select(UserMatchModel)
                .where(UserMatchModel.user_id == user_id)
                .order_by(UserMatchModel.match_score.desc(), UserMatchModel.id.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing matches for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list matches: {e}") from e

    def save_matches(self, records: Sequence[MatchRecord]) -> int:
        """Insert match rows, skipping (user, job) pairs that already exist.

        Scores are normalized to 0-1 by ``MatchRecord``.

        Returns:
            Number of rows inserted

        Raises:
            DataIntegrityError: On constraint violation (e.g. unknown user or job)
            PersistenceError: If database error occurs
        """
        if not records:
            return 0

        try:
            user_ids = {record.user_id for record in records}
            rows = self.session.execute(
                select(UserMatchModel.user_id, UserMatchModel.job_id).where(
                    UserMatchModel.user_id.in_(user_ids)
                )
            ).all()
            existing_pairs = {(row.user_id, row.job_id) for row in rows}

            inserted = 0
            for record in records:
                pair = (record.user_id, record.job_id)
                if pair in existing_pairs:
                    continue
                self.session.add(UserMatchModel.from_domain(record))
                existing_pairs.add(pair)
                inserted += 1

            self.session.flush()
            return inserted

        except IntegrityError as e:
            logger.error(f"Integrity error saving matches: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save matches due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving matches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save matches: {e}") from e
