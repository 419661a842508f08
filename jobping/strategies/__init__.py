"""Tier strategies: pre-filter candidates, rank them, fall back when needed."""

from .base import TierStrategy
from .free import FreeMatchingStrategy
from .models import StrategyMethod, StrategyResult
from .premium import PremiumMatchingStrategy

__all__ = [
    "TierStrategy",
    "FreeMatchingStrategy",
    "PremiumMatchingStrategy",
    "StrategyMethod",
    "StrategyResult",
]
