"""AI ranking: prompts, reasoning-service client, response parsing and caching."""

from .cache import MatchCache, build_cache_key
from .client import OpenAIReasoningClient, ReasoningClient
from .exceptions import RankingParseError, ReasoningServiceError
from .parsing import RankingEntry, extract_entries, load_ranking_payload, normalize_ranking_entry
from .prompts import SYSTEM_ROLE, FreeMatchPromptBuilder, PremiumMatchPromptBuilder, builder_for
from .service import AIRankingAdapter

__all__ = [
    "AIRankingAdapter",
    "MatchCache",
    "build_cache_key",
    "ReasoningClient",
    "OpenAIReasoningClient",
    "ReasoningServiceError",
    "RankingParseError",
    "RankingEntry",
    "load_ranking_payload",
    "normalize_ranking_entry",
    "extract_entries",
    "SYSTEM_ROLE",
    "FreeMatchPromptBuilder",
    "PremiumMatchPromptBuilder",
    "builder_for",
]
