"""Exceptions raised inside the AI ranking layer.

Neither escapes :class:`~jobping.ai.service.AIRankingAdapter`; both are
converted into an empty batch result there.
"""


class ReasoningServiceError(Exception):
    """The reasoning service call failed, timed out or returned nothing."""


class RankingParseError(ValueError):
    """The reasoning service response did not contain a usable ranking."""
