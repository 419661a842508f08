"""Parsing of reasoning-service ranking responses.

Responses are free text that should contain a JSON object of the form
``{"matches": [{"jobIndex", "matchScore", "confidenceScore", "matchReason"}]}``.
In practice they arrive wrapped in markdown fences, surrounded by prose,
with a ``matche`` typo or with snake_case field names. Everything is
normalized here into :class:`RankingEntry`, so nothing downstream has to
know about response variants.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .exceptions import RankingParseError

DEFAULT_CONFIDENCE = 85.0
DEFAULT_REASON = "AI analyzed match"
MIN_MATCH_SCORE = 30

_FENCE = re.compile(r"```[a-zA-Z]*")
_MATCHES_TYPO = re.compile(r'"matche"\s*:')

_INDEX_KEYS = ("jobIndex", "job_index")
_SCORE_KEYS = ("matchScore", "match_score", "score")
_CONFIDENCE_KEYS = ("confidenceScore", "confidence_score")
_REASON_KEYS = ("matchReason", "match_reason", "reason")


@dataclass(frozen=True)
class RankingEntry:
    """One validated ranking entry referencing a job in the submitted batch."""

    job_index: int
    match_score: float
    confidence_score: float
    match_reason: str


def load_ranking_payload(content: Optional[str]) -> Dict[str, Any]:
    """
    Extract the ranking object from a raw response.

    Raises:
        RankingParseError: If no JSON object with a ``matches`` list is found
    """
    if not content or not isinstance(content, str) or not content.strip():
        raise RankingParseError("Empty response")

    text = _FENCE.sub("", content).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise RankingParseError("No JSON object in response")

    candidate = _MATCHES_TYPO.sub('"matches":', text[start:end + 1])
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise RankingParseError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise RankingParseError("Response JSON is not an object")
    if not isinstance(payload.get("matches"), list):
        raise RankingParseError("Response has no 'matches' list")
    return payload


def _first_present(raw: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def _as_index(value: Any) -> Optional[int]:
    number = _as_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def normalize_ranking_entry(raw: Any, batch_size: int) -> Optional[RankingEntry]:
    """
    Map one raw entry onto :class:`RankingEntry`.

    Accepts camelCase and snake_case field names. Returns None when the
    index is missing or outside ``[0, batch_size)`` or the score is not a
    number.
    """
    if not isinstance(raw, dict):
        return None

    index = _as_index(_first_present(raw, _INDEX_KEYS))
    if index is None or not 0 <= index < batch_size:
        return None

    score = _as_number(_first_present(raw, _SCORE_KEYS))
    if score is None:
        return None

    confidence = _as_number(_first_present(raw, _CONFIDENCE_KEYS))
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE

    reason = _first_present(raw, _REASON_KEYS)
    if not isinstance(reason, str) or not reason.strip():
        reason = DEFAULT_REASON

    return RankingEntry(
        job_index=index,
        match_score=max(0.0, min(100.0, score)),
        confidence_score=max(0.0, min(100.0, confidence)),
        match_reason=reason.strip(),
    )


def extract_entries(
    payload: Dict[str, Any], batch_size: int, min_score: float = MIN_MATCH_SCORE
) -> List[RankingEntry]:
    """Normalize every entry of a loaded payload, dropping invalid, duplicate and low scores."""
    entries: List[RankingEntry] = []
    seen = set()
    for raw in payload.get("matches", []):
        entry = normalize_ranking_entry(raw, batch_size)
        if entry is None or entry.match_score < min_score or entry.job_index in seen:
            continue
        seen.add(entry.job_index)
        entries.append(entry)
    return entries
