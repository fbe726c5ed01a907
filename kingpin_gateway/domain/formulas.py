"""Progression and robbery formulas - pure functions, no I/O"""

import math
from typing import Tuple

from kingpin_gateway.domain.constants import MAX_LEVEL, ROB_CONFIG, TIER_LEVELS, RobConfig, Tier
from kingpin_gateway.domain.models import RateInputs


def xp_for_level(level: int) -> int:
    """
    XP needed to advance through a single level.

    Formula: XP = 100 × 1.25^(N-1)
    """
    if level < 1:
        return 0
    return math.floor(100 * 1.25 ** (level - 1))


def total_xp_for_level(level: int) -> int:
    """Cumulative XP needed to complete levels 1..level"""
    return sum(xp_for_level(i) for i in range(1, level + 1))


def level_from_xp(total_xp: int) -> int:
    """Level reached with `total_xp` experience, capped at MAX_LEVEL"""
    level = 1
    xp_needed = 0
    while level < MAX_LEVEL:
        xp_needed += xp_for_level(level)
        if total_xp < xp_needed:
            return level
        level += 1
    return MAX_LEVEL


def tier_from_level(level: int) -> Tier:
    tier = TIER_LEVELS[0][0]
    for candidate, min_level in TIER_LEVELS:
        if level >= min_level:
            tier = candidate
    return tier


def progression_for_xp(total_xp: int) -> Tuple[int, Tier]:
    """Level and tier for an experience total. The only way to derive either."""
    level = level_from_xp(total_xp)
    return level, tier_from_level(level)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_rob_success_rate(params: RateInputs, config: RobConfig = ROB_CONFIG) -> float:
    """
    Calculate robbery success probability.

    Formula:
    Base: 60%
    + attacker weapon and faction bonus (capped at 15 points)
    - defender armor and faction bonus (capped at 15 points)
    ± 1% per level of difference (capped at ±10%)
    × attacker consumable multiplier ÷ defender consumable multiplier
    = final rate, clamped to [min_success_rate, max_success_rate]
    """
    attack_bonus = min(params.attacker_weapon_bonus + params.attacker_faction_bonus, config.max_weapon_bonus)
    defense_bonus = min(params.defender_armor_bonus + params.defender_faction_bonus, config.max_armor_reduction)

    rate = config.base_success_rate
    rate += max(attack_bonus, 0.0) / 100
    rate -= max(defense_bonus, 0.0) / 100

    level_diff = params.attacker_level - params.defender_level
    rate += _clamp(level_diff * config.level_diff_modifier, -config.max_level_modifier, config.max_level_modifier)

    defense_multiplier = params.defense_multiplier if params.defense_multiplier > 0 else 1.0
    rate = rate * params.attack_multiplier / defense_multiplier

    return _clamp(rate, config.min_success_rate, config.max_success_rate)


def format_wealth(amount: int) -> str:
    """$12,345 style formatting; negative amounts keep their sign"""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,}"

