"""Scoring primitives.

Each function scores one matching dimension for a (job, preferences) pair
and returns a value in [0, 100]. All reference data comes in through the
``tables`` argument.
"""

import re
from datetime import datetime
from typing import List, Optional

from jobping.domain.models import Job, UserPreferences, WorkEnvironment
from jobping.utils.timestamps import days_since

from .tables import MatchingTables

_WORD_SPLIT = re.compile(r"[^a-z0-9+#&]+")

# (max days since posting, score); anything older scores RECENCY_FLOOR
RECENCY_STEPS = (
    (1, 100),
    (2, 95),
    (3, 85),
    (7, 70),
    (14, 50),
    (21, 35),
    (30, 20),
    (60, 10),
)
RECENCY_FLOOR = 5


def _words(text: str) -> List[str]:
    return [w for w in _WORD_SPLIT.split(text.lower()) if w]


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def skills_score(job: Job, prefs: UserPreferences, tables: MatchingTables) -> float:
    """Keyword overlap between the user's skills and the job text.

    Per keyword: direct substring 100, synonym 85, partial word overlap 70.
    The average is topped up by a coverage bonus of 4 points per matched
    keyword (max 25). Returns 0 when the user gave no keywords.
    """
    keywords = prefs.keyword_list
    if not keywords:
        return 0.0

    text = f"{job.title} {job.description}".lower()
    job_words = [w for w in _words(text) if len(w) > 3]

    total = 0.0
    matched = 0
    for keyword in keywords:
        if keyword in text:
            total += 100
            matched += 1
        elif any(synonym in text for synonym in tables.skill_synonyms.get(keyword, [])):
            total += 85
            matched += 1
        elif any(keyword in word or word in keyword for word in job_words):
            total += 70
            matched += 1

    average = total / len(keywords)
    return _clamp(min(100.0, average + min(25, matched * 4)))


def _job_experience_label(job: Job) -> Optional[str]:
    if job.experience_required:
        return job.experience_required
    if job.is_internship:
        return "internship"
    if job.is_graduate:
        return "graduate"
    return None


def experience_score(job: Job, prefs: UserPreferences, tables: MatchingTables) -> float:
    """Distance between user and job seniority on the ordinal scale.

    Same level 100, one apart 80, a two-level stretch upwards 65, anything
    else 25. Neutral 50 when either side is unspecified.
    """
    user_level = tables.experience_ordinal(prefs.entry_level_preference)
    job_level = tables.experience_ordinal(_job_experience_label(job))
    if user_level is None or job_level is None:
        return 50.0

    difference = abs(user_level - job_level)
    if difference == 0:
        return 100.0
    if difference == 1:
        return 80.0
    if difference == 2 and user_level < job_level:
        return 65.0
    return 25.0


def city_matches(job: Job, target_city: str) -> bool:
    """Substring-tolerant city comparison ("Central London" vs "London")."""
    target = target_city.strip().lower()
    if not target:
        return False
    job_city = (job.city or "").lower()
    if job_city and (job_city == target or target in job_city or job_city in target):
        return True
    return bool(job.location) and target in job.location.lower()


def location_score(job: Job, prefs: UserPreferences, tables: MatchingTables) -> float:
    """Tiered location fit.

    City hit 100, same country 75, both in European hubs 50, remote or
    hybrid job 35, otherwise 15. Neutral 50 when the user named no city.
    """
    cities = prefs.target_cities
    if not cities:
        return 50.0

    if any(city_matches(job, city) for city in cities):
        return 100.0

    job_country = tables.normalize_country(job.country)
    if job_country:
        for city in cities:
            target = city.strip().lower()
            target_country = tables.country_for_city(target)
            if target_country and target_country == job_country:
                return 75.0
            if target in job_country:
                return 75.0

    job_in_europe = tables.is_european_hub(job.city) or tables.is_european_country(job.country)
    if job_in_europe and any(tables.is_european_hub(city) for city in cities):
        return 50.0

    if job.work_environment in (WorkEnvironment.REMOTE, WorkEnvironment.HYBRID):
        return 35.0
    if job.location and "remote" in job.location.lower():
        return 35.0

    return 15.0


def category_path_score(category: str, path: str, tables: MatchingTables) -> float:
    """Best-effort relevance of one job category to one career path."""
    if tables.category_matches_path(category, path):
        return 100.0

    category_lower = category.lower()
    category_spaced = category_lower.replace("-", " ")
    synonyms = tables.synonyms_for_path(path) or [path.lower()]
    for synonym in synonyms:
        if synonym in category_lower or synonym in category_spaced:
            return 90.0

    for term in synonyms + tables.categories_for_path(path):
        if any(len(word) > 3 and word in category_lower for word in _words(term)):
            return 70.0

    return 0.0


def career_path_score(job: Job, prefs: UserPreferences, tables: MatchingTables) -> float:
    """Alignment of the job's categories with the user's career paths.

    Average best match per category, plus a coverage bonus (max 25) for the
    share of category/path pairs scoring 60 or more and a strong-match bonus
    of 5 per pair scoring 80 or more (max 20). Neutral-low 40 when either
    side is empty.
    """
    paths = prefs.career_path
    categories = job.categories
    if not paths or not categories:
        return 40.0

    total = 0.0
    matched = 0
    strong = 0
    for category in categories:
        best = 0.0
        for path in paths:
            score = category_path_score(category, path, tables)
            best = max(best, score)
            if score >= 80:
                strong += 1
            if score >= 60:
                matched += 1
        total += best

    average = total / len(categories)
    coverage_bonus = min(25.0, matched / len(paths) * 25)
    strong_bonus = min(20.0, strong * 5)
    return _clamp(min(100.0, average + coverage_bonus + strong_bonus))


def recency_score(job: Job, now: Optional[datetime] = None) -> float:
    """Step function on days since posting. Missing dates count as today."""
    age = days_since(job.posted_at, now)
    for max_days, score in RECENCY_STEPS:
        if age <= max_days:
            return float(score)
    return float(RECENCY_FLOOR)
