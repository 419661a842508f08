"""Tests for the AI ranking cache."""

import pytest

from jobping.ai.cache import MatchCache, build_cache_key
from jobping.config.models import Tier

from tests.helpers.factories import make_job, make_prefs


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMatchCache:
    """Tests for LRU and TTL behaviour."""

    def test_get_and_set(self):
        cache = MatchCache(max_entries=10, ttl_seconds=60)

        cache.set("a", [1, 2])

        assert cache.get("a") == [1, 2]
        assert cache.hits == 1

    def test_miss(self):
        cache = MatchCache()

        assert cache.get("missing") is None
        assert cache.misses == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache = MatchCache(ttl_seconds=60, clock=clock)
        cache.set("a", "value")

        clock.now += 59
        assert cache.get("a") == "value"

        clock.now += 1
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_least_recently_used_is_evicted(self):
        cache = MatchCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")

        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_clear(self):
        cache = MatchCache()
        cache.set("a", 1)

        cache.clear()

        assert len(cache) == 0

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            MatchCache(max_entries=0)


class TestBuildCacheKey:
    """Tests for cache key derivation."""

    def test_job_order_does_not_matter(self):
        jobs = [make_job(), make_job()]
        prefs = make_prefs()

        assert build_cache_key(Tier.FREE, prefs, jobs) == build_cache_key(
            Tier.FREE, prefs, list(reversed(jobs))
        )

    def test_email_case_does_not_matter(self):
        jobs = [make_job()]

        assert build_cache_key(Tier.FREE, make_prefs(email="User@Example.com"), jobs) == (
            build_cache_key(Tier.FREE, make_prefs(email="user@example.com"), jobs)
        )

    def test_differs_by_tier_user_and_jobs(self):
        jobs = [make_job()]
        prefs = make_prefs()
        key = build_cache_key(Tier.FREE, prefs, jobs)

        assert key != build_cache_key(Tier.PREMIUM, prefs, jobs)
        assert key != build_cache_key(Tier.FREE, make_prefs(email="other@example.com"), jobs)
        assert key != build_cache_key(Tier.FREE, make_prefs(target_cities=["Paris"]), jobs)
        assert key != build_cache_key(Tier.FREE, prefs, jobs + [make_job()])
