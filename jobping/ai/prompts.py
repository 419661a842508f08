"""Tier-specific instruction payloads for the reasoning service.

Both builders share one layout: role framing, user profile, freshness
constraint, scoring weights, response schema and a numbered job list.
The free builder only reads the attributes a free-tier user supplies.
"""

from typing import List, Sequence, Tuple

from jobping.config.models import MatchingConfig, Tier
from jobping.domain.models import Job, UserPreferences

SYSTEM_ROLE = (
    "You are an expert career counselor helping match job seekers with perfect job "
    "opportunities. Analyze job matches based on skills, experience, location "
    "preferences, and career goals."
)

_RESPONSE_SCHEMA = """Respond with a single JSON object and nothing else:
{
  "matches": [
    {
      "jobIndex": 0,
      "matchScore": 88,
      "confidenceScore": 90,
      "matchReason": "Graduate analyst role in the user's target city that matches their career path"
    }
  ]
}

- jobIndex: the number shown before the job in the JOBS list
- matchScore: 0-100, higher means a better fit
- confidenceScore: 0-100, how certain you are about the fit
- matchReason: one or two sentences naming the concrete reasons for the fit"""


def _or_default(values: Sequence[str], default: str, sep: str = ", ") -> str:
    return sep.join(values) if values else default


class MatchPromptBuilder:
    """Common prompt layout. Subclasses supply the tier-specific sections."""

    #: Weight guidance as (criterion, percent) pairs
    weights: Tuple[Tuple[str, int], ...] = ()

    def __init__(self, config: MatchingConfig):
        self.config = config

    @property
    def target_matches(self) -> int:
        return self.config.max_matches

    @property
    def max_jobs(self) -> int:
        return self.config.max_jobs_for_ai

    def build(self, prefs: UserPreferences, jobs: List[Job]) -> str:
        """Assemble the full user prompt for one batch of jobs."""
        wanted = min(self.target_matches, len(jobs))
        sections = [
            self.framing(),
            self.profile(prefs),
            self.freshness_constraint(),
            self.weight_guidance(),
            self.task(wanted),
            _RESPONSE_SCHEMA,
            "JOBS:\n" + self.format_jobs(jobs),
        ]
        return "\n\n".join(section for section in sections if section)

    def framing(self) -> str:
        raise NotImplementedError

    def profile(self, prefs: UserPreferences) -> str:
        raise NotImplementedError

    def task(self, wanted: int) -> str:
        raise NotImplementedError

    def freshness_constraint(self) -> str:
        days = self.config.job_freshness_days
        return (
            f"FRESHNESS: Only recommend jobs posted within the last {days} days. "
            "Treat jobs without a posting date as fresh."
        )

    def weight_guidance(self) -> str:
        lines = ["SCORING WEIGHTS:"]
        lines.extend(f"- {criterion}: {percent}%" for criterion, percent in self.weights)
        return "\n".join(lines)

    @staticmethod
    def format_job(index: int, job: Job) -> str:
        return (
            f"{index}: {job.title} | {job.company} | {job.city or 'Unknown city'} | "
            f"Categories: {_or_default(job.categories, 'N/A')} | "
            f"Level: {job.experience_required or 'Not specified'}"
        )

    def format_jobs(self, jobs: List[Job]) -> str:
        return "\n".join(self.format_job(i, job) for i, job in enumerate(jobs))


class FreeMatchPromptBuilder(MatchPromptBuilder):
    """Entry-level focus on the two signals a free user gives: city and career path."""

    weights = (
        ("Career alignment", 40),
        ("Location match", 30),
        ("Experience fit (entry-level focus)", 20),
        ("Company reputation", 10),
    )

    def framing(self) -> str:
        return (
            "You are a career counselor helping a recent graduate find realistic "
            "entry-level roles they are qualified for and would genuinely apply to."
        )

    def profile(self, prefs: UserPreferences) -> str:
        career = prefs.primary_career_path or "Open"
        cities = _or_default(prefs.target_cities, "Flexible")
        return (
            "USER PROFILE:\n"
            f"- Career focus: {career}\n"
            f"- Target cities: {cities}\n"
            "- Experience level: Entry-level/Graduate"
        )

    def task(self, wanted: int) -> str:
        return (
            f"TASK: Select EXACTLY {wanted} jobs from the list. Every job must be in one "
            "of the target cities and belong to the user's career focus. Weight career "
            "alignment and location above how recently the job was posted."
        )


class PremiumMatchPromptBuilder(MatchPromptBuilder):
    """Detailed profile, multi-path career alignment and a high quality bar."""

    min_match_score = 85
    min_confidence = 90

    weights = (
        ("Career alignment across all chosen career paths", 35),
        ("Freshness", 25),
        ("Location match", 20),
        ("Skills and experience fit", 15),
        ("Work environment and visa fit", 5),
    )

    def framing(self) -> str:
        return (
            "You are a senior career counselor for a paying subscriber. The user "
            "completed a detailed career assessment and expects recommendations that "
            "reflect every part of it."
        )

    def profile(self, prefs: UserPreferences) -> str:
        return (
            "USER PROFILE:\n"
            f"- Career paths: {_or_default(prefs.career_path, 'Open', ' or ')}\n"
            f"- Target cities: {_or_default(prefs.target_cities, 'Flexible')}\n"
            f"- Skills and keywords: {prefs.career_keywords or 'Not specified'}\n"
            f"- Experience level: {prefs.entry_level_preference or 'Not specified'}\n"
            f"- Languages: {_or_default(prefs.languages_spoken, 'Not specified')}\n"
            f"- Work environment: "
            f"{prefs.work_environment.value if prefs.work_environment else 'Flexible'}\n"
            f"- Visa status: {prefs.visa_status or 'Not specified'}"
        )

    def task(self, wanted: int) -> str:
        return (
            f"TASK: Select EXACTLY {wanted} jobs from the list. Recommend roles across "
            "all of the user's career paths, prefer the most recently posted jobs, and "
            f"only include matches you would score at least {self.min_match_score} with "
            f"a confidence of at least {self.min_confidence}."
        )

    @staticmethod
    def format_job(index: int, job: Job) -> str:
        extras = []
        if job.work_environment:
            extras.append(f"Work: {job.work_environment.value}")
        if job.offers_visa_support:
            extras.append("Visa support")
        if job.language_requirements:
            extras.append(f"Languages: {', '.join(job.language_requirements)}")
        if job.posted_at:
            extras.append(f"Posted: {job.posted_at.date().isoformat()}")
        line = MatchPromptBuilder.format_job(index, job)
        return " | ".join([line] + extras)


def builder_for(config: MatchingConfig) -> MatchPromptBuilder:
    """Prompt builder for a tier policy."""
    if config.tier == Tier.FREE:
        return FreeMatchPromptBuilder(config)
    if config.tier.is_premium:
        return PremiumMatchPromptBuilder(config)
    raise ValueError(f"No prompt builder for tier {config.tier!r}")
