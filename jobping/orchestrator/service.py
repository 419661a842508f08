"""Signup matching orchestration."""

import logging
import time
from datetime import datetime
from typing import Callable, List, Mapping, Optional
from uuid import uuid4

from jobping.ai.client import ReasoningClient
from jobping.ai.service import AIRankingAdapter
from jobping.config.exceptions import ConfigurationError
from jobping.config.models import AppConfig, MatchingConfig, Tier
from jobping.config.tiers import get_matching_config
from jobping.domain.models import Job, MatchMethod, UserPreferences
from jobping.logging import get_logger
from jobping.logging.context import log_context
from jobping.matching.fallback import FallbackScorer
from jobping.matching.models import JobMatch
from jobping.matching.tables import load_tables
from jobping.metrics import MetricsSink, NullMetricsSink
from jobping.persistence.database import get_session
from jobping.persistence.exceptions import MatchPersistenceError, PersistenceError
from jobping.persistence.repositories import JobRepository, MatchRepository, UserRepository
from jobping.strategies.base import TierStrategy
from jobping.strategies.free import FreeMatchingStrategy
from jobping.strategies.models import StrategyResult
from jobping.strategies.premium import PremiumMatchingStrategy
from jobping.utils.timestamps import freshness_cutoff, utc_now

from .models import MatchingOutcome, MatchingStatus

MESSAGE_IDEMPOTENT = "Matches were already generated for this account"
MESSAGE_NO_JOBS = "No fresh jobs are available right now. We will keep looking"
MESSAGE_NO_MATCHES = "No jobs matched your preferences yet. We will keep looking"
MESSAGE_CHECK_FAILED = "We could not check your existing matches. Please try again shortly"
MESSAGE_FETCH_FAILED = "We could not load jobs right now. Please try again shortly"
MESSAGE_SAVE_FAILED = "Your matches could not be saved. Please try again shortly"


class SignupMatchingService:
    """
    Runs matching once per user signup.

    States: idempotency check, job fetch, strategy dispatch, persist.
    The idempotency check always completes before any job is fetched or
    any ranking call is made, so retried signups and duplicate webhook
    deliveries never produce a second match set.

    Only ``ConfigurationError`` escapes :meth:`run`; database failures are
    reported as ``MatchingStatus.DATABASE_ERROR`` outcomes.
    """

    def __init__(
        self,
        strategies: Mapping[Tier, TierStrategy],
        metrics: Optional[MetricsSink] = None,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: logging.Logger = None,
    ):
        self.strategies = dict(strategies)
        self.metrics = metrics or NullMetricsSink()
        self.clock = clock
        self.logger = logger_instance or get_logger(__name__, component="orchestrator")

    def run(self, prefs: UserPreferences, dry_run: bool = False) -> MatchingOutcome:
        """
        Match one user against the current job pool.

        Args:
            prefs: Preferences submitted at signup; ``subscription_tier`` selects the policy
            dry_run: Compute matches without writing them

        Returns:
            MatchingOutcome describing the terminal state

        Raises:
            ConfigurationError: If the tier is unknown or has no strategy
        """
        config = get_matching_config(prefs.subscription_tier)
        strategy = self._strategy_for(config.tier)
        request_id = uuid4().hex[:12]
        started = time.perf_counter()

        with log_context(request_id=request_id, tier=config.tier.value, email=prefs.email):
            self.logger.info(
                "Matching run started",
                extra={"event": "matching.run.started", "dry_run": dry_run},
            )

            outcome = self._execute(prefs, config, strategy, dry_run)
            outcome.request_id = request_id
            outcome.duration_seconds = round(time.perf_counter() - started, 3)

            self._record_metrics(outcome)
            self.logger.info(
                f"Matching run completed: {outcome.status.value} ({outcome.match_count} matches)",
                extra={
                    "event": "matching.run.completed",
                    "status": outcome.status.value,
                    "method": outcome.method.value if outcome.method else None,
                    "strategy_method": (
                        outcome.strategy_method.value if outcome.strategy_method else None
                    ),
                    "match_count": outcome.match_count,
                    "persisted": outcome.persisted,
                    "duration_seconds": outcome.duration_seconds,
                },
            )
            return outcome

    def _strategy_for(self, tier: Tier) -> TierStrategy:
        strategy = self.strategies.get(tier)
        if strategy is None:
            raise ConfigurationError(
                f"No matching strategy registered for tier '{tier.value}'",
                suggestions=["Register a strategy for every tier in create_matching_service()"],
            )
        return strategy

    def _execute(
        self,
        prefs: UserPreferences,
        config: MatchingConfig,
        strategy: TierStrategy,
        dry_run: bool,
    ) -> MatchingOutcome:
        try:
            user_id = self._resolve_user_id(prefs, config)
            existing = self._existing_match_count(user_id, config)
        except PersistenceError as e:
            self.logger.error(
                f"Idempotency check failed: {e}",
                extra={"event": "matching.idempotency.failed", "error_type": type(e).__name__},
            )
            return MatchingOutcome(
                success=False,
                status=MatchingStatus.DATABASE_ERROR,
                tier=config.tier,
                error=str(e),
                message=MESSAGE_CHECK_FAILED,
            )

        if existing:
            self.logger.info(
                f"User already has {existing} matches, skipping",
                extra={"event": "matching.idempotent", "existing_matches": existing},
            )
            return MatchingOutcome(
                success=True,
                status=MatchingStatus.IDEMPOTENT,
                tier=config.tier,
                method=MatchMethod.IDEMPOTENT,
                match_count=existing,
                persisted=True,
                message=MESSAGE_IDEMPOTENT,
            )

        try:
            jobs = self._fetch_jobs(prefs, config)
        except PersistenceError as e:
            self.logger.error(
                f"Job fetch failed: {e}",
                extra={"event": "matching.jobs.fetch_failed", "error_type": type(e).__name__},
            )
            return MatchingOutcome(
                success=False,
                status=MatchingStatus.DATABASE_ERROR,
                tier=config.tier,
                error=str(e),
                message=MESSAGE_FETCH_FAILED,
            )

        self.logger.info(
            f"Fetched {len(jobs)} candidate jobs",
            extra={"event": "matching.jobs.fetched", "candidates": len(jobs)},
        )
        if not jobs:
            return MatchingOutcome(
                success=True,
                status=MatchingStatus.NO_JOBS_AVAILABLE,
                tier=config.tier,
                message=MESSAGE_NO_JOBS,
            )

        result = strategy.run(prefs, jobs, config)
        if not result.matches:
            return MatchingOutcome(
                success=True,
                status=MatchingStatus.NO_MATCHING_JOBS,
                tier=config.tier,
                strategy_method=result.method,
                message=MESSAGE_NO_MATCHES,
            )

        outcome = MatchingOutcome(
            success=True,
            status=MatchingStatus.MATCHED,
            tier=config.tier,
            method=result.match_method,
            strategy_method=result.method,
            match_count=len(result.matches),
            matches=result.matches,
        )
        if dry_run:
            return outcome

        return self._persist(outcome, result, user_id, config)

    def _resolve_user_id(self, prefs: UserPreferences, config: MatchingConfig) -> Optional[int]:
        """Storage id for ``prefs``. Lookup failures only propagate for premium tiers."""
        if prefs.user_id is not None:
            return prefs.user_id
        try:
            with get_session() as session:
                return UserRepository(session).get_by_email(prefs.email)
        except PersistenceError as e:
            if config.tier.is_premium:
                raise
            self.logger.warning(
                f"Could not resolve user identity: {e}",
                extra={"event": "matching.user.lookup_failed"},
            )
            return None

    def _existing_match_count(self, user_id: Optional[int], config: MatchingConfig) -> int:
        """
        Number of stored matches for ``user_id``.

        A failed check is treated as "no matches" for free users. Premium
        runs must not start matching without it, so the error propagates.
        """
        if user_id is None:
            return 0
        try:
            with get_session() as session:
                return MatchRepository(session).count_for_user(user_id)
        except PersistenceError as e:
            if config.tier.is_premium:
                raise
            self.logger.warning(
                f"Idempotency check failed, continuing: {e}",
                extra={"event": "matching.idempotency.check_failed", "user_id": user_id},
            )
            return 0

    def _fetch_jobs(self, prefs: UserPreferences, config: MatchingConfig) -> List[Job]:
        cutoff = freshness_cutoff(config.job_freshness_days, now=self.clock())
        # Free users are only ever matched in their own cities
        city_filter = None if config.tier.is_premium else prefs.target_cities
        with get_session() as session:
            return JobRepository(session).fetch_candidates(
                cutoff, config.max_jobs_to_fetch, city_filter=city_filter
            )

    def _persist(
        self,
        outcome: MatchingOutcome,
        result: StrategyResult,
        user_id: Optional[int],
        config: MatchingConfig,
    ) -> MatchingOutcome:
        try:
            saved = self._save(result.matches, user_id, config.tier)
        except PersistenceError as e:
            if config.tier.is_premium:
                self.logger.error(
                    f"Saving premium matches failed: {e}",
                    extra={"event": "matching.persist.failed", "error_type": type(e).__name__},
                )
                outcome.success = False
                outcome.status = MatchingStatus.DATABASE_ERROR
                outcome.error = str(e)
                outcome.message = MESSAGE_SAVE_FAILED
                return outcome

            self.logger.warning(
                f"Saving free matches failed, returning them unsaved: {e}",
                extra={"event": "matching.persist.failed", "error_type": type(e).__name__},
            )
            outcome.error = str(e)
            return outcome

        outcome.persisted = True
        self.logger.info(
            f"Persisted {saved} matches",
            extra={"event": "matching.persisted", "saved": saved},
        )
        return outcome

    def _save(self, matches: List[JobMatch], user_id: Optional[int], tier: Tier) -> int:
        if user_id is None:
            raise MatchPersistenceError("User has no storage identity; matches cannot be saved")

        with get_session() as session:
            if tier.is_premium and not UserRepository(session).exists(user_id):
                raise MatchPersistenceError(f"User {user_id} does not exist")
            records = [match.to_record(user_id) for match in matches if match.job.id is not None]
            return MatchRepository(session).save_matches(records)

    def _record_metrics(self, outcome: MatchingOutcome) -> None:
        tags = {"tier": outcome.tier.value, "status": outcome.status.value}
        self.metrics.increment("matching.runs", tags=tags)
        if outcome.status == MatchingStatus.MATCHED:
            self.metrics.increment("matching.matches", value=outcome.match_count, tags=tags)
        self.metrics.timing("matching.duration", outcome.duration_seconds, tags=tags)


def create_matching_service(
    app_config: AppConfig,
    client: Optional[ReasoningClient] = None,
    metrics: Optional[MetricsSink] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], datetime] = utc_now,
) -> SignupMatchingService:
    """
    Wire tables, scorer, AI adapter and tier strategies into a service.

    Without a ``client`` every strategy goes straight to rule-based matching.
    """
    tables = load_tables(app_config.tables_path)
    scorer = FallbackScorer(tables, clock=clock)
    adapter = AIRankingAdapter(client, app_config.ai, metrics=metrics, sleep=sleep)

    free = FreeMatchingStrategy(adapter, scorer)
    premium = PremiumMatchingStrategy(adapter, scorer)
    return SignupMatchingService(
        strategies={Tier.FREE: free, Tier.PREMIUM_PENDING: premium, Tier.PREMIUM: premium},
        metrics=metrics,
        clock=clock,
    )
