"""Insurance policy rules: premium currency and protection selection"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from kingpin_gateway.domain.constants import INSURANCE_CONFIG, InsuranceConfig, InsuranceTier
from kingpin_gateway.domain.exceptions import InvalidInsuranceTierError
from kingpin_gateway.domain.models import InsuranceStatus


def parse_tier(value: Optional[str]) -> InsuranceTier:
    """Map a stored/requested tier name to InsuranceTier (empty means none)"""
    if not value:
        return InsuranceTier.NONE
    try:
        return InsuranceTier(value.lower())
    except ValueError as e:
        raise InvalidInsuranceTierError(f"Unknown insurance tier: {value}") from e


def is_policy_current(
    tier: InsuranceTier,
    paid_at: Optional[datetime],
    now: datetime,
    billing_period: timedelta,
    grace_period: timedelta,
) -> bool:
    """
    A paid policy is current while the last premium is younger than one
    billing period plus the grace window. The `none` tier is always current.
    """
    if tier == InsuranceTier.NONE:
        return True
    if paid_at is None:
        return False
    return now - paid_at < billing_period + grace_period


def build_status(
    tier: InsuranceTier,
    paid_at: Optional[datetime],
    now: datetime,
    billing_period: timedelta,
    grace_period: timedelta,
    config: InsuranceConfig = INSURANCE_CONFIG,
) -> InsuranceStatus:
    tier_config = config.tiers[tier]
    return InsuranceStatus(
        tier=tier,
        protection_fraction=tier_config.protection,
        daily_premium=tier_config.daily_premium,
        paid_at=paid_at,
        is_current=is_policy_current(tier, paid_at, now, billing_period, grace_period),
    )


def effective_protection(status: InsuranceStatus, housing_fraction: float = 0.0) -> Tuple[float, Optional[str]]:
    """
    Higher of the policy protection and the legacy housing-item protection.

    Returns (fraction, source) where source is "policy", "housing" or None.
    """
    policy = status.effective_protection
    housing = min(max(housing_fraction, 0.0), 1.0)
    if policy <= 0 and housing <= 0:
        return 0.0, None
    if policy >= housing:
        return policy, "policy"
    return housing, "housing"
