"""Per-tier matching policies."""

from types import MappingProxyType
from typing import Mapping, Union

from .exceptions import UnknownTierError
from .models import MatchingConfig, Tier

_PREMIUM_POLICY = dict(
    max_matches=15,
    job_freshness_days=7,
    use_ai=True,
    max_jobs_for_ai=30,
    fallback_threshold=5,
    max_jobs_to_fetch=10000,
)

TIER_CONFIGS: Mapping[Tier, MatchingConfig] = MappingProxyType(
    {
        Tier.FREE: MatchingConfig(
            tier=Tier.FREE,
            max_matches=5,
            job_freshness_days=30,
            use_ai=True,
            max_jobs_for_ai=10,
            fallback_threshold=3,
            max_jobs_to_fetch=5000,
        ),
        Tier.PREMIUM_PENDING: MatchingConfig(tier=Tier.PREMIUM_PENDING, **_PREMIUM_POLICY),
        Tier.PREMIUM: MatchingConfig(tier=Tier.PREMIUM, **_PREMIUM_POLICY),
    }
)


def resolve_tier(tier: Union[Tier, str]) -> Tier:
    """Coerce a tier label to :class:`Tier`.

    Raises:
        UnknownTierError: If the label is not a known tier
    """
    if isinstance(tier, Tier):
        return tier
    try:
        return Tier(str(tier).strip().lower())
    except ValueError:
        raise UnknownTierError(tier, [t.value for t in Tier]) from None


def get_matching_config(tier: Union[Tier, str]) -> MatchingConfig:
    """Return the immutable matching policy for a tier.

    Raises:
        UnknownTierError: If the label is not a known tier
    """
    return TIER_CONFIGS[resolve_tier(tier)]
