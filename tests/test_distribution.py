"""Tests for balanced result-set selection."""

import pytest

from jobping.domain.models import MatchMethod
from jobping.matching.distribution import BalancedDistributionSelector
from jobping.matching.models import JobMatch
from jobping.matching.tables import default_tables

from tests.helpers.factories import make_job, make_prefs


def ranked(*jobs_with_scores):
    return [
        JobMatch(job=job, match_score=score, match_reason="", method=MatchMethod.FALLBACK)
        for job, score in jobs_with_scores
    ]


@pytest.fixture
def selector():
    return BalancedDistributionSelector(default_tables())


def berlin_job(**overrides):
    return make_job(city="Berlin", country="Germany", **overrides)


class TestSingleDimension:
    """One city and one career path: plain top N."""

    def test_top_n(self, selector):
        matches = ranked(*((make_job(), 90 - i) for i in range(6)))

        selected = selector.select(matches, make_prefs(), 4)

        assert selected == matches[:4]

    def test_duplicates_removed(self, selector):
        job = make_job()
        duplicate = make_job(job_url=job.job_url)
        other = make_job()
        matches = ranked((job, 90), (duplicate, 89), (other, 80))

        selected = selector.select(matches, make_prefs(), 5)

        assert [m.job for m in selected] == [job, other]


class TestBalancedSelection:
    """Multiple cities or career paths: fair-share quotas first."""

    def test_cities_get_equal_share(self, selector):
        london = [make_job() for _ in range(4)]
        berlin = [berlin_job() for _ in range(2)]
        matches = ranked(
            (london[0], 90), (london[1], 89), (london[2], 88), (london[3], 87),
            (berlin[0], 60), (berlin[1], 59),
        )
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = selector.select(matches, prefs, 4)

        assert [m.job for m in selected] == [london[0], london[1], berlin[0], berlin[1]]

    def test_second_pass_fills_by_score(self, selector):
        london = [make_job() for _ in range(4)]
        berlin = [berlin_job() for _ in range(2)]
        matches = ranked(
            (london[0], 90), (london[1], 89), (london[2], 88), (london[3], 87),
            (berlin[0], 60), (berlin[1], 59),
        )
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = selector.select(matches, prefs, 5)

        assert [m.job for m in selected] == [
            london[0], london[1], berlin[0], berlin[1], london[2],
        ]

    def test_career_paths_get_equal_share(self, selector):
        data = [make_job() for _ in range(3)]
        finance = [make_job(categories=["finance"]) for _ in range(2)]
        matches = ranked(
            (data[0], 90), (data[1], 89), (data[2], 88), (finance[0], 50), (finance[1], 49),
        )
        prefs = make_prefs(career_path=["data-analytics", "finance-investment"])

        selected = selector.select(matches, prefs, 4)

        assert [m.job for m in selected] == [data[0], data[1], finance[0], finance[1]]

    def test_jobs_outside_targets_only_fill_leftover_slots(self, selector):
        paris = make_job(city="Paris", country="France")
        london = make_job()
        berlin = berlin_job()
        matches = ranked((paris, 95), (london, 80), (berlin, 70))
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = selector.select(matches, prefs, 3)

        assert [m.job for m in selected] == [london, berlin, paris]

    def test_never_exceeds_max(self, selector):
        matches = ranked(*((make_job(), 90 - i) for i in range(10)))
        prefs = make_prefs(target_cities=["London", "Berlin"])

        assert len(selector.select(matches, prefs, 3)) == 3


class TestSourceCaps:
    """One source may not take more than a third of a balanced result."""

    def test_dominant_source_gives_way_to_other_boards(self, selector):
        a, b, c = (make_job(source="greenhouse") for _ in range(3))
        d = berlin_job(source="Greenhouse")
        e = make_job(source="lever")
        f = berlin_job(source="lever")
        matches = ranked((a, 90), (b, 89), (c, 88), (d, 85), (e, 70), (f, 65))
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = [m.job for m in selector.select(matches, prefs, 4)]

        assert selected == [a, b, f, e]
        assert sum(job.source.lower() == "greenhouse" for job in selected) == 2

    def test_single_source_still_fills_result(self, selector):
        a, b = (make_job(source="greenhouse") for _ in range(2))
        c, d = (berlin_job(source="greenhouse") for _ in range(2))
        matches = ranked((a, 90), (b, 89), (c, 80), (d, 79))
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = [m.job for m in selector.select(matches, prefs, 3)]

        assert selected == [a, b, c]

    def test_jobs_without_source_are_not_capped(self, selector):
        london = [make_job() for _ in range(2)]
        berlin = [berlin_job() for _ in range(2)]
        matches = ranked((london[0], 90), (london[1], 89), (berlin[0], 80), (berlin[1], 79))
        prefs = make_prefs(target_cities=["London", "Berlin"])

        selected = [m.job for m in selector.select(matches, prefs, 3)]

        assert selected == [london[0], berlin[0], london[1]]
