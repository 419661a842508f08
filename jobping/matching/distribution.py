"""Balanced selection of ranked matches across the user's preferences."""

import logging
import math
from typing import Dict, List, Optional, Set

from jobping.domain.models import Job, UserPreferences
from jobping.logging import get_logger

from .models import JobMatch
from .scoring import city_matches
from .tables import MatchingTables

# At most 1/SOURCE_SHARE of a result set comes from one source while quotas apply
SOURCE_SHARE = 3


def source_key(job: Job) -> Optional[str]:
    """Lower-cased job source, or None when the source is unknown."""
    return job.source.lower() if job.source else None


class BalancedDistributionSelector:
    """
    Pick a bounded result set that represents every target city and career path.

    Taking the top N by score can fill every slot from one city when the
    user listed two. The selector runs three passes over the score-sorted list:

    1. Admit a job only while both its city and its career path are under
       their fair-share quota (floor(max / count) each).
    2. Fill remaining slots by score, ignoring city and path quotas.
    3. Fill whatever is still open by score, ignoring source caps.

    Passes 1 and 2 also cap each known source at ceil(max / 3) jobs so one
    board cannot dominate the result. Pass 2 can push a city or path past
    its quota; that is accepted.
    """

    def __init__(self, tables: MatchingTables, logger_instance: logging.Logger = None):
        self.tables = tables
        self.logger = logger_instance or get_logger(__name__, component="matching")

    def select(
        self, ranked: List[JobMatch], prefs: UserPreferences, max_matches: int
    ) -> List[JobMatch]:
        """
        Select up to ``max_matches`` entries from a score-descending list.

        Args:
            ranked: Matches sorted by score, best first
            prefs: User preferences supplying cities and career paths
            max_matches: Result-set size

        Returns:
            Selected matches, duplicates (by job URL or hash) removed
        """
        cities = [c.lower() for c in prefs.target_cities]
        paths = list(prefs.career_path)

        if len(cities) <= 1 and len(paths) <= 1:
            return self._top_unique(ranked, max_matches)

        per_city = max_matches // len(cities) if cities else max_matches
        per_path = max_matches // len(paths) if paths else max_matches
        per_source = math.ceil(max_matches / SOURCE_SHARE)
        city_counts: Dict[str, int] = {city: 0 for city in cities}
        path_counts: Dict[str, int] = {path: 0 for path in paths}
        source_counts: Dict[str, int] = {}

        selected: List[JobMatch] = []
        seen: Set[str] = set()

        def admit(match: JobMatch) -> None:
            selected.append(match)
            seen.add(match.job.dedupe_key)
            source = source_key(match.job)
            if source is not None:
                source_counts[source] = source_counts.get(source, 0) + 1

        def source_open(job: Job) -> bool:
            source = source_key(job)
            return source is None or source_counts.get(source, 0) < per_source

        # Pass 1: fill fair-share quotas
        for match in ranked:
            if len(selected) >= max_matches:
                break
            if match.job.dedupe_key in seen or not source_open(match.job):
                continue

            city = self._open_city(match.job, cities, city_counts, per_city)
            path = self._open_path(match.job, paths, path_counts, per_path)

            if (not cities or city) and (not paths or path):
                admit(match)
                if city:
                    city_counts[city] += 1
                if path:
                    path_counts[path] += 1

        # Pass 2: best remaining scores within source caps
        for match in ranked:
            if len(selected) >= max_matches:
                break
            if match.job.dedupe_key not in seen and source_open(match.job):
                admit(match)

        # Pass 3: best remaining scores
        for match in ranked:
            if len(selected) >= max_matches:
                break
            if match.job.dedupe_key not in seen:
                admit(match)

        self.logger.debug(
            "Applied balanced distribution",
            extra={
                "event": "matching.distribution.applied",
                "city_counts": city_counts,
                "path_counts": path_counts,
                "source_counts": source_counts,
                "selected": len(selected),
            },
        )
        return selected

    @staticmethod
    def _top_unique(ranked: List[JobMatch], max_matches: int) -> List[JobMatch]:
        selected = []
        seen: Set[str] = set()
        for match in ranked:
            if len(selected) >= max_matches:
                break
            if match.job.dedupe_key not in seen:
                seen.add(match.job.dedupe_key)
                selected.append(match)
        return selected

    @staticmethod
    def _open_city(
        job: Job, cities: List[str], counts: Dict[str, int], quota: int
    ) -> Optional[str]:
        for city in cities:
            if city_matches(job, city) and counts[city] < quota:
                return city
        return None

    def _open_path(
        self, job: Job, paths: List[str], counts: Dict[str, int], quota: int
    ) -> Optional[str]:
        for path in paths:
            if counts[path] >= quota:
                continue
            if any(self.tables.category_matches_path(cat, path) for cat in job.categories):
                return path
        return None
