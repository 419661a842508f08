"""Tests for the signup matching service."""

import json
from datetime import timedelta
from unittest.mock import Mock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from jobping.ai.client import ReasoningClient
from jobping.config.exceptions import ConfigurationError
from jobping.config.models import AppConfig, Tier
from jobping.domain.models import MatchMethod
from jobping.metrics import InMemoryMetricsSink
from jobping.orchestrator import MatchingStatus, SignupMatchingService, create_matching_service
from jobping.orchestrator.service import (
    MESSAGE_CHECK_FAILED,
    MESSAGE_FETCH_FAILED,
    MESSAGE_NO_JOBS,
    MESSAGE_SAVE_FAILED,
)
from jobping.persistence import (
    JobRepository,
    MatchRepository,
    PersistenceError,
    UserRepository,
    close_database,
    get_session,
    init_database,
)
from jobping.strategies.models import StrategyMethod

from tests.helpers.database import store_jobs, store_user
from tests.helpers.factories import NOW, make_job, make_premium_prefs, make_prefs


def ranking(*indexes):
    return json.dumps({
        "matches": [
            {"jobIndex": i, "matchScore": 95 - i, "confidenceScore": 90, "matchReason": "Fit"}
            for i in indexes
        ]
    })


def stored_match_count(user_id):
    with get_session() as session:
        return MatchRepository(session).count_for_user(user_id)


@pytest.fixture(autouse=True)
def setup_database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def client():
    client = Mock(spec=ReasoningClient)
    client.complete.return_value = ranking(0, 1, 2, 3, 4)
    return client


@pytest.fixture
def metrics():
    return InMemoryMetricsSink()


@pytest.fixture
def service(client, metrics):
    return create_matching_service(
        AppConfig(), client=client, metrics=metrics, sleep=Mock(), clock=lambda: NOW
    )


@pytest.fixture
def offline_service(metrics):
    return create_matching_service(AppConfig(), metrics=metrics, clock=lambda: NOW)


@pytest.fixture
def locked_commit(monkeypatch):
    """Make the commit that follows save_matches fail as a locked SQLite file would."""
    save_matches = MatchRepository.save_matches
    commit = Session.commit
    state = {"saved": False}

    def recording_save(self, records):
        state["saved"] = True
        return save_matches(self, records)

    def failing_commit(self):
        if state["saved"]:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        return commit(self)

    monkeypatch.setattr(MatchRepository, "save_matches", recording_save)
    monkeypatch.setattr(Session, "commit", failing_commit)
    return state


class TestFreeTier:
    """Tests for free-tier runs."""

    def test_ai_matches_persisted(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(user)

        assert outcome.success
        assert outcome.status == MatchingStatus.MATCHED
        assert outcome.method == MatchMethod.AI
        assert outcome.strategy_method == StrategyMethod.FREE_AI_RANKED
        assert outcome.match_count == 5
        assert outcome.persisted
        assert stored_match_count(user.user_id) == 5

    def test_user_id_resolved_from_email(self, service):
        stored = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(make_prefs())

        assert outcome.persisted
        assert stored_match_count(stored.user_id) == 5

    def test_second_run_is_idempotent(self, service, client):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])
        service.run(user)
        calls = client.complete.call_count

        outcome = service.run(user)

        assert outcome.success
        assert outcome.status == MatchingStatus.IDEMPOTENT
        assert outcome.method == MatchMethod.IDEMPOTENT
        assert outcome.match_count == 5
        assert client.complete.call_count == calls
        assert stored_match_count(user.user_id) == 5

    def test_no_jobs_available(self, service, client):
        user = store_user(make_prefs())

        outcome = service.run(user)

        assert outcome.success
        assert outcome.status == MatchingStatus.NO_JOBS_AVAILABLE
        assert outcome.match_count == 0
        assert outcome.message == MESSAGE_NO_JOBS
        client.complete.assert_not_called()

    def test_stale_and_remote_city_jobs_are_not_fetched(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job(posted_at=NOW - timedelta(days=45)), make_job(city="Paris")])

        assert service.run(user).status == MatchingStatus.NO_JOBS_AVAILABLE

    def test_no_matching_jobs(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job(categories=["finance"])])

        outcome = service.run(user)

        assert outcome.success
        assert outcome.status == MatchingStatus.NO_MATCHING_JOBS
        assert outcome.strategy_method == StrategyMethod.NO_MATCHING_JOBS

    def test_dry_run_saves_nothing(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(user, dry_run=True)

        assert outcome.status == MatchingStatus.MATCHED
        assert not outcome.persisted
        assert stored_match_count(user.user_id) == 0

    def test_rule_based_without_reasoning_service(self, offline_service):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(7)])

        outcome = offline_service.run(user)

        assert outcome.method == MatchMethod.FALLBACK
        assert outcome.strategy_method == StrategyMethod.FREE_FALLBACK_ONLY
        assert outcome.match_count == 5
        with get_session() as session:
            records = MatchRepository(session).list_for_user(user.user_id)
        assert [r.match_score for r in records] == pytest.approx([0.5] * 5)

    def test_save_failure_returns_unsaved_matches(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        with patch.object(MatchRepository, "save_matches", side_effect=PersistenceError("disk full")):
            outcome = service.run(user)

        assert outcome.success
        assert outcome.status == MatchingStatus.MATCHED
        assert not outcome.persisted
        assert outcome.error == "disk full"
        assert outcome.match_count == 5

    def test_commit_failure_returns_unsaved_matches(self, service, locked_commit):
        """Test that a failed commit after saving is a warning, not an exception."""
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(user)

        assert locked_commit["saved"]
        assert outcome.success
        assert outcome.status == MatchingStatus.MATCHED
        assert not outcome.persisted
        assert "database is locked" in outcome.error
        assert outcome.match_count == 5

    def test_unknown_user_matches_are_not_saved(self, service):
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(make_prefs(email="new@example.com"))

        assert outcome.success
        assert not outcome.persisted
        assert outcome.error

    def test_idempotency_check_failure_continues(self, service):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        with patch.object(MatchRepository, "count_for_user", side_effect=PersistenceError("locked")):
            outcome = service.run(user)

        assert outcome.status == MatchingStatus.MATCHED
        assert outcome.persisted


class TestPremiumTier:
    """Tests for premium-tier runs."""

    def test_rule_based_premium_run(self, offline_service):
        user = store_user(make_premium_prefs())
        store_jobs([make_job(work_environment="hybrid") for _ in range(3)])

        outcome = offline_service.run(user)

        assert outcome.status == MatchingStatus.MATCHED
        assert outcome.strategy_method == StrategyMethod.PREMIUM_FALLBACK_FILTERED
        assert outcome.match_count == 3
        assert {m.match_score for m in outcome.matches} == {70}
        assert stored_match_count(user.user_id) == 3

    def test_city_substrings_reach_premium_filter(self, offline_service):
        user = store_user(make_premium_prefs())
        store_jobs([make_job(city="Central London", work_environment="hybrid")])

        outcome = offline_service.run(user)

        assert outcome.match_count == 1

    def test_pending_premium_uses_premium_strategy(self, offline_service):
        user = store_user(make_premium_prefs(subscription_tier=Tier.PREMIUM_PENDING))
        store_jobs([make_job(work_environment="hybrid")])

        outcome = offline_service.run(user)

        assert outcome.tier == Tier.PREMIUM_PENDING
        assert outcome.strategy_method == StrategyMethod.PREMIUM_FALLBACK_FILTERED

    def test_save_failure_is_database_error(self, offline_service):
        user = store_user(make_premium_prefs())
        store_jobs([make_job(work_environment="hybrid")])

        with patch.object(MatchRepository, "save_matches", side_effect=PersistenceError("disk full")):
            outcome = offline_service.run(user)

        assert not outcome.success
        assert outcome.status == MatchingStatus.DATABASE_ERROR
        assert outcome.message == MESSAGE_SAVE_FAILED
        assert not outcome.persisted

    def test_commit_failure_is_database_error(self, offline_service, locked_commit):
        user = store_user(make_premium_prefs())
        store_jobs([make_job(work_environment="hybrid")])

        outcome = offline_service.run(user)

        assert locked_commit["saved"]
        assert not outcome.success
        assert outcome.status == MatchingStatus.DATABASE_ERROR
        assert outcome.message == MESSAGE_SAVE_FAILED
        assert "database is locked" in outcome.error

    def test_idempotency_check_failure_stops_before_ranking(self, service, client):
        """Test that premium runs never match without a completed idempotency check."""
        user = store_user(make_premium_prefs())
        store_jobs([make_job(work_environment="hybrid") for _ in range(3)])

        with patch.object(MatchRepository, "count_for_user", side_effect=PersistenceError("locked")):
            with patch.object(JobRepository, "fetch_candidates") as fetch:
                outcome = service.run(user)

        assert not outcome.success
        assert outcome.status == MatchingStatus.DATABASE_ERROR
        assert outcome.message == MESSAGE_CHECK_FAILED
        assert outcome.error == "locked"
        fetch.assert_not_called()
        assert client.complete.call_count == 0

    def test_repeat_run_with_failed_check_makes_no_extra_calls(self, client, metrics):
        user = store_user(make_premium_prefs())
        store_jobs([make_job(work_environment="hybrid") for _ in range(3)])
        first = create_matching_service(
            AppConfig(), client=client, metrics=metrics, sleep=Mock(), clock=lambda: NOW
        ).run(user)
        calls = client.complete.call_count
        fresh_service = create_matching_service(
            AppConfig(), client=client, metrics=metrics, sleep=Mock(), clock=lambda: NOW
        )

        with patch.object(MatchRepository, "count_for_user", side_effect=PersistenceError("locked")):
            outcome = fresh_service.run(user)

        assert first.persisted
        assert outcome.status == MatchingStatus.DATABASE_ERROR
        assert client.complete.call_count == calls
        assert stored_match_count(user.user_id) == first.match_count

    def test_user_lookup_failure_is_database_error(self, service, client):
        store_jobs([make_job(work_environment="hybrid")])

        with patch.object(UserRepository, "get_by_email", side_effect=PersistenceError("locked")):
            outcome = service.run(make_premium_prefs())

        assert outcome.status == MatchingStatus.DATABASE_ERROR
        client.complete.assert_not_called()

    def test_unknown_premium_user_is_database_error(self, offline_service):
        store_jobs([make_job(work_environment="hybrid")])

        outcome = offline_service.run(make_premium_prefs(user_id=999))

        assert not outcome.success
        assert outcome.status == MatchingStatus.DATABASE_ERROR


class TestFailuresAndMetrics:
    """Tests for database failures, configuration errors and metrics."""

    def test_job_fetch_failure(self, service, client):
        user = store_user(make_prefs())

        with patch.object(JobRepository, "fetch_candidates", side_effect=PersistenceError("db down")):
            outcome = service.run(user)

        assert not outcome.success
        assert outcome.status == MatchingStatus.DATABASE_ERROR
        assert outcome.message == MESSAGE_FETCH_FAILED
        client.complete.assert_not_called()

    def test_missing_strategy_raises(self):
        service = SignupMatchingService(strategies={})

        with pytest.raises(ConfigurationError):
            service.run(make_prefs())

    def test_metrics_and_request_id(self, service, metrics):
        user = store_user(make_prefs())
        store_jobs([make_job() for _ in range(5)])

        outcome = service.run(user)

        tags = {"tier": "free", "status": "matched"}
        assert metrics.count("matching.runs", tags=tags) == 1
        assert metrics.count("matching.matches", tags=tags) == 5
        assert len(metrics.timings("matching.duration")) == 1
        assert len(outcome.request_id) == 12
        assert outcome.duration_seconds >= 0
