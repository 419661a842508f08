"""AI ranking adapter: batches jobs through the reasoning service."""

import logging
import time
from typing import Callable, List, Optional

from jobping.config.models import AIConfig, MatchingConfig
from jobping.domain.models import Job, MatchMethod, UserPreferences
from jobping.logging import get_logger
from jobping.matching.models import JobMatch
from jobping.metrics import MetricsSink, NullMetricsSink

from .cache import MatchCache, build_cache_key
from .client import ReasoningClient
from .exceptions import RankingParseError, ReasoningServiceError
from .parsing import RankingEntry, extract_entries, load_ranking_payload
from .prompts import SYSTEM_ROLE, MatchPromptBuilder, builder_for


class AIRankingAdapter:
    """
    Rank jobs for a user with the external reasoning service.

    Responsibilities:
    - Build the tier's prompt for each batch of jobs
    - Call the reasoning service with inter-batch pacing
    - Parse and normalize the ranking into JobMatch results
    - Cache complete rankings per (user, job set)

    Failures never propagate: a failed batch contributes nothing, and the
    caller detects an empty result and falls back to rule-based matching.
    """

    def __init__(
        self,
        client: Optional[ReasoningClient],
        ai_config: Optional[AIConfig] = None,
        cache: Optional[MatchCache] = None,
        metrics: Optional[MetricsSink] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: logging.Logger = None,
    ):
        self.client = client
        self.ai_config = ai_config or AIConfig()
        self.cache = cache if cache is not None else MatchCache(
            max_entries=self.ai_config.cache_max_entries,
            ttl_seconds=self.ai_config.cache_ttl_seconds,
        )
        self.metrics = metrics or NullMetricsSink()
        self.sleep = sleep
        self.logger = logger_instance or get_logger(__name__, component="ai")

    @property
    def available(self) -> bool:
        return self.client is not None and self.ai_config.enabled

    def find_matches(
        self, prefs: UserPreferences, jobs: List[Job], config: MatchingConfig
    ) -> List[JobMatch]:
        """
        Rank up to ``config.max_jobs_for_ai`` jobs for one user.

        Args:
            prefs: User preferences (already reduced to the tier's attributes)
            jobs: Pre-filtered candidate jobs
            config: Tier policy

        Returns:
            Matches sorted by score, at most ``config.max_matches`` long;
            empty when AI is unavailable or every batch failed
        """
        if not self.available or not jobs:
            return []

        builder = builder_for(config)
        candidates = jobs[: builder.max_jobs]
        tier = config.tier.value
        cache_key = build_cache_key(config.tier, prefs, candidates)

        cached = self.cache.get(cache_key)
        if cached is not None:
            self.metrics.increment("ai.cache_hits", tags={"tier": tier})
            self.logger.info(
                "Using cached AI ranking",
                extra={"event": "ai.cache.hit", "matches": len(cached)},
            )
            return list(cached)

        batch_size = self.ai_config.batch_size
        matches: List[JobMatch] = []
        failed_batches = 0

        for batch_number, start in enumerate(range(0, len(candidates), batch_size)):
            if batch_number > 0 and self.ai_config.batch_delay_seconds > 0:
                self.sleep(self.ai_config.batch_delay_seconds)

            batch = candidates[start:start + batch_size]
            entries = self._rank_batch(prefs, batch, builder, batch_number, tier)
            if entries is None:
                failed_batches += 1
                continue

            matches.extend(self._to_match(batch[entry.job_index], entry) for entry in entries)

        matches = self._best_unique(matches, builder.target_matches)

        if matches and failed_batches == 0:
            self.cache.set(cache_key, list(matches))

        self.logger.info(
            "AI ranking completed",
            extra={
                "event": "ai.ranking.completed",
                "jobs_submitted": len(candidates),
                "failed_batches": failed_batches,
                "matches": len(matches),
            },
        )
        return matches

    def _rank_batch(
        self,
        prefs: UserPreferences,
        batch: List[Job],
        builder: MatchPromptBuilder,
        batch_number: int,
        tier: str,
    ) -> Optional[List[RankingEntry]]:
        """Rank one batch. Returns None when the call or the parse failed."""
        self.metrics.increment("ai.calls", tags={"tier": tier})
        started = time.time()
        try:
            content = self.client.complete(
                SYSTEM_ROLE,
                builder.build(prefs, batch),
                model=self.ai_config.model,
                max_tokens=self.ai_config.max_tokens,
                temperature=self.ai_config.temperature,
            )
            payload = load_ranking_payload(content)
        except (ReasoningServiceError, RankingParseError) as e:
            self._record_failure(batch_number, tier, str(e), type(e).__name__)
            return None
        except Exception as e:
            self.logger.error(
                f"Unexpected error ranking batch {batch_number}: {e}",
                exc_info=True,
                extra={"event": "ai.batch.failed", "batch": batch_number},
            )
            self.metrics.increment("ai.failures", tags={"tier": tier})
            return None
        finally:
            self.metrics.timing("ai.call_duration", time.time() - started, tags={"tier": tier})

        return extract_entries(payload, len(batch), self.ai_config.min_match_score)

    def _record_failure(self, batch_number: int, tier: str, error: str, error_type: str) -> None:
        self.metrics.increment("ai.failures", tags={"tier": tier})
        self.logger.warning(
            f"AI batch {batch_number} failed: {error}",
            extra={"event": "ai.batch.failed", "batch": batch_number, "error_type": error_type},
        )

    @staticmethod
    def _to_match(job: Job, entry: RankingEntry) -> JobMatch:
        return JobMatch(
            job=job,
            match_score=entry.match_score,
            match_reason=entry.match_reason,
            method=MatchMethod.AI,
            confidence_score=entry.confidence_score,
        )

    @staticmethod
    def _best_unique(matches: List[JobMatch], limit: int) -> List[JobMatch]:
        ordered = sorted(matches, key=lambda m: m.match_score, reverse=True)
        unique: List[JobMatch] = []
        seen = set()
        for match in ordered:
            if match.job.dedupe_key in seen:
                continue
            seen.add(match.job.dedupe_key)
            unique.append(match)
            if len(unique) >= limit:
                break
        return unique
