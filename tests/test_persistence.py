"""Unit tests for persistence layer."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from jobping.config.models import Tier
from jobping.domain.models import MatchMethod, MatchRecord, WorkEnvironment
from jobping.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    JobRepository,
    MatchRepository,
    PersistenceError,
    UserRepository,
    city_variants,
    close_database,
    get_session,
    init_database,
)
from jobping.persistence.schema import JobModel, UserMatchModel, UserModel

from tests.helpers.database import store_jobs, store_user
from tests.helpers.factories import NOW, make_job, make_premium_prefs, make_prefs


@pytest.fixture
def memory_db():
    init_database("sqlite:///:memory:")
    yield
    close_database()


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_success(self, tmp_path):
        """Test successful database initialization."""
        db_file = tmp_path / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        with get_session() as session:
            assert session is not None

        close_database()

    def test_init_database_creates_parent_directories(self, tmp_path):
        db_file = tmp_path / "subdir" / "nested" / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        close_database()

    def test_init_database_invalid_url_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

        with pytest.raises(DatabaseConnectionError):
            init_database(None)

    def test_unreachable_database_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("not-a-scheme://nowhere")

    def test_schema_creation_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'test.db'}"

        init_database(db_url)
        init_database(db_url)

        with get_session() as session:
            result = session.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            tables = [row[0] for row in result.fetchall()]
        assert {"users", "jobs", "user_matches"} <= set(tables)

        close_database()

    def test_foreign_keys_enforced(self, memory_db):
        with get_session() as session:
            assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1


class TestSessionManagement:
    """Tests for session management."""

    @pytest.fixture(autouse=True)
    def setup_database(self, memory_db):
        yield

    def test_session_commits_on_success(self):
        with get_session() as session:
            session.add(JobModel.from_domain(make_job(job_hash="committed")))

        with get_session() as session:
            assert JobRepository(session).get_by_hash("committed") is not None

    def test_session_rolls_back_on_exception(self):
        with pytest.raises(ValueError):
            with get_session() as session:
                session.add(JobModel.from_domain(make_job(job_hash="rolled-back")))
                session.flush()
                raise ValueError("Test exception")

        with get_session() as session:
            assert JobRepository(session).get_by_hash("rolled-back") is None

    def test_commit_failure_raised_as_persistence_error(self):
        """Test that an error raised by the final commit is translated."""
        locked = OperationalError("COMMIT", {}, Exception("database is locked"))

        with patch.object(Session, "commit", side_effect=locked):
            with pytest.raises(PersistenceError, match="database is locked"):
                with get_session() as session:
                    session.add(JobModel.from_domain(make_job(job_hash="locked")))

        with get_session() as session:
            assert JobRepository(session).get_by_hash("locked") is None

    def test_commit_constraint_violation_raised_as_integrity_error(self):
        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                session.add(JobModel.from_domain(make_job(job_hash="twice")))
                session.add(JobModel.from_domain(make_job(job_hash="twice")))

    def test_get_session_without_init_raises_error(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="Database not initialized"):
            with get_session():
                pass


class TestORMModelConversions:
    """Tests for ORM model to domain model conversions."""

    def test_user_model_round_trip(self):
        prefs = make_premium_prefs()
        model = UserModel(created_at="2025-11-04T12:00:00.000000Z")

        model.apply_preferences(prefs)
        restored = model.to_preferences()

        assert model.subscription_tier == "premium"
        assert model.work_environment == "hybrid"
        assert restored.target_cities == ["London", "Berlin"]
        assert restored.subscription_tier == Tier.PREMIUM
        assert restored.work_environment == WorkEnvironment.HYBRID
        assert restored.career_keywords == prefs.career_keywords

    def test_job_model_from_domain(self):
        job = make_job(work_environment="remote", visa_friendly=True, posted_at=NOW)

        model = JobModel.from_domain(job)

        assert model.job_hash == job.job_hash
        assert model.work_environment == "remote"
        assert model.posted_at == "2025-11-04T12:00:00.000000Z"
        assert model.categories == ["data-analytics"]
        assert model.created_at is not None

    def test_job_model_to_domain(self):
        model = JobModel.from_domain(make_job(posted_at=None))
        model.id = 5

        job = model.to_domain()

        assert job.id == 5
        assert job.posted_at is None
        assert job.experience_required == "entry-level"

    def test_match_model_conversions(self):
        record = MatchRecord(user_id=1, job_id=2, match_score=85, match_method=MatchMethod.AI)

        model = UserMatchModel.from_domain(record)
        restored = model.to_domain()

        assert model.match_score == pytest.approx(0.85)
        assert model.match_method == "ai"
        assert restored.match_score == pytest.approx(0.85)
        assert restored.created_at is not None


class TestUserRepository:
    """Tests for UserRepository."""

    @pytest.fixture(autouse=True)
    def setup_database(self, memory_db):
        yield

    def test_upsert_inserts_new_user(self):
        stored = store_user(make_prefs())

        assert stored.user_id is not None
        with get_session() as session:
            assert UserRepository(session).get_by_email("user@example.com") == stored.user_id

    def test_lookup_is_case_insensitive(self):
        stored = store_user(make_prefs())

        with get_session() as session:
            assert UserRepository(session).get_by_email("USER@Example.com") == stored.user_id

    def test_upsert_updates_existing_user(self):
        first = store_user(make_prefs())

        second = store_user(make_prefs(target_cities=["Paris"]))

        assert second.user_id == first.user_id
        with get_session() as session:
            assert UserRepository(session).get_preferences("user@example.com").target_cities == [
                "Paris"
            ]

    def test_unknown_user(self):
        with get_session() as session:
            repo = UserRepository(session)
            assert repo.get_by_email("nobody@example.com") is None
            assert repo.get_preferences("nobody@example.com") is None
            assert not repo.exists(999)

    def test_exists(self):
        stored = store_user(make_prefs())

        with get_session() as session:
            assert UserRepository(session).exists(stored.user_id)


class TestJobRepository:
    """Tests for JobRepository."""

    @pytest.fixture(autouse=True)
    def setup_database(self, memory_db):
        yield

    def fetch(self, days=30, max_rows=100, city_filter=None):
        with get_session() as session:
            return JobRepository(session).fetch_candidates(
                NOW - timedelta(days=days), max_rows, city_filter=city_filter
            )

    def test_upsert_inserts_and_updates_by_hash(self):
        job = make_job()
        [stored] = store_jobs([job])

        [updated] = store_jobs([job.model_copy(update={"description": "Updated"})])

        assert updated.id == stored.id
        assert updated.description == "Updated"

    def test_fetch_excludes_stale_jobs(self):
        fresh, no_date, stale = store_jobs([
            make_job(posted_at=NOW - timedelta(days=3)),
            make_job(posted_at=None),
            make_job(posted_at=NOW - timedelta(days=40)),
        ])

        hashes = {job.job_hash for job in self.fetch(days=30)}

        assert hashes == {fresh.job_hash, no_date.job_hash}

    def test_fetch_excludes_inactive_and_filtered_jobs(self):
        active, inactive = store_jobs([make_job(), make_job(is_active=False)])
        with get_session() as session:
            filtered = JobModel.from_domain(make_job())
            filtered.status = "filtered"
            filtered.filtered_reason = "spam"
            session.add(filtered)

        assert [job.job_hash for job in self.fetch()] == [active.job_hash]

    def test_fetch_orders_newest_first_and_limits(self):
        store_jobs([
            make_job(title="Oldest", created_at=NOW - timedelta(hours=3)),
            make_job(title="Newest", created_at=NOW),
            make_job(title="Middle", created_at=NOW - timedelta(hours=1)),
        ])

        assert [job.title for job in self.fetch(max_rows=2)] == ["Newest", "Middle"]

    def test_fetch_city_filter_tolerates_casing(self):
        store_jobs([
            make_job(city="London"),
            make_job(city="london"),
            make_job(city="LONDON"),
            make_job(city="Paris"),
        ])

        cities = sorted(job.city for job in self.fetch(city_filter=["london"]))

        assert cities == ["LONDON", "London", "london"]

    def test_city_variants(self):
        assert city_variants(["new york", " "]) == ["new york", "NEW YORK", "New York"]


class TestMatchRepository:
    """Tests for MatchRepository."""

    @pytest.fixture(autouse=True)
    def setup_database(self, memory_db):
        yield

    @pytest.fixture
    def user_and_jobs(self):
        user = store_user(make_prefs())
        jobs = store_jobs([make_job() for _ in range(3)])
        return user.user_id, jobs

    def records(self, user_id, jobs, scores):
        return [
            MatchRecord(user_id=user_id, job_id=job.id, job_hash=job.job_hash, match_score=score)
            for job, score in zip(jobs, scores)
        ]

    def test_save_and_list(self, user_and_jobs):
        user_id, jobs = user_and_jobs

        with get_session() as session:
            inserted = MatchRepository(session).save_matches(
                self.records(user_id, jobs, [60, 90, 75])
            )

        with get_session() as session:
            repo = MatchRepository(session)
            assert inserted == 3
            assert repo.count_for_user(user_id) == 3
            assert [r.match_score for r in repo.list_for_user(user_id)] == pytest.approx(
                [0.9, 0.75, 0.6]
            )

    def test_existing_pairs_skipped(self, user_and_jobs):
        user_id, jobs = user_and_jobs
        with get_session() as session:
            MatchRepository(session).save_matches(self.records(user_id, jobs[:2], [80, 80]))

        with get_session() as session:
            inserted = MatchRepository(session).save_matches(
                self.records(user_id, jobs, [80, 80, 80])
            )

        assert inserted == 1
        with get_session() as session:
            assert MatchRepository(session).count_for_user(user_id) == 3

    def test_duplicates_within_batch_skipped(self, user_and_jobs):
        user_id, jobs = user_and_jobs
        records = self.records(user_id, [jobs[0], jobs[0]], [80, 70])

        with get_session() as session:
            assert MatchRepository(session).save_matches(records) == 1

    def test_unknown_user_rejected(self, user_and_jobs):
        _, jobs = user_and_jobs

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                MatchRepository(session).save_matches(self.records(999, jobs[:1], [80]))

    def test_empty_batch(self):
        with get_session() as session:
            assert MatchRepository(session).save_matches([]) == 0

    def test_count_for_user_without_matches(self):
        with get_session() as session:
            assert MatchRepository(session).count_for_user(42) == 0
