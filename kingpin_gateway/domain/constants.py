"""Game tuning constants for robbery, progression, durability and insurance"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class Tier(str, Enum):
    """Coarse player rank derived from level"""

    ROOKIE = "Rookie"
    ASSOCIATE = "Associate"
    SOLDIER = "Soldier"
    CAPTAIN = "Captain"
    UNDERBOSS = "Underboss"
    KINGPIN = "Kingpin"


class ItemSlot(str, Enum):
    WEAPON = "weapon"
    ARMOR = "armor"
    BUSINESS = "business"
    HOUSING = "housing"
    NONE = "none"


EQUIPMENT_SLOTS = (ItemSlot.WEAPON, ItemSlot.ARMOR, ItemSlot.BUSINESS, ItemSlot.HOUSING)


class InsuranceTier(str, Enum):
    NONE = "none"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class CooldownAction:
    """Action types used as cooldown keys"""

    ROB_TARGET = "rob_target"
    JAIL = "jail"


class BuffType:
    IMMUNITY = "juicernaut_immunity"
    ROB_ATTACK = "rob_attack"
    ROB_DEFENSE = "rob_defense"


class EventType:
    ROB = "rob"
    ROB_VICTIM = "rob_victim"
    ITEM_THEFT = "item_theft"
    INSURANCE_PURCHASE = "insurance_purchase"
    INSURANCE_PREMIUM = "insurance_premium"
    INSURANCE_LAPSE = "insurance_lapse"


class Objective:
    """Mission / achievement objective keys reported to the progress service"""

    ROB_ATTEMPTS = "rob_attempts"
    ROB_SUCCESSES = "rob_successes"
    ROB_DEFENSES = "rob_defenses"
    ROB_WINS = "rob_wins"
    WEALTH_EARNED = "wealth_earned"
    TOTAL_WEALTH_EARNED = "total_wealth_earned"
    LEVEL_REACHED = "level_reached"


class RecordType:
    """Hall-of-fame record keys kept by the leaderboard service"""

    BIGGEST_SINGLE_ROB = "biggest_single_rob"


class TerritoryActivity:
    ROB = "rob"


# Inclusive level ranges; the last tier is open-ended
TIER_LEVELS: Tuple[Tuple[Tier, int], ...] = (
    (Tier.ROOKIE, 1),
    (Tier.ASSOCIATE, 20),
    (Tier.SOLDIER, 40),
    (Tier.CAPTAIN, 60),
    (Tier.UNDERBOSS, 80),
    (Tier.KINGPIN, 100),
)

MAX_LEVEL = 200


@dataclass(frozen=True)
class RobConfig:
    """Robbery formula and reward tuning. Bonuses are in percentage points."""

    base_success_rate: float = 0.60
    min_success_rate: float = 0.45
    max_success_rate: float = 0.85
    max_weapon_bonus: float = 15.0
    max_armor_reduction: float = 15.0
    level_diff_modifier: float = 0.01
    max_level_modifier: float = 0.10
    steal_fraction_min: float = 0.08
    steal_fraction_max: float = 0.28
    item_theft_chance: float = 0.05
    xp_reward_success: int = 50
    xp_reward_failure: int = 10
    cooldown_hours: int = 24


@dataclass(frozen=True)
class DurabilityConfig:
    decay_attacker: Tuple[int, int] = (2, 3)
    decay_defender: Tuple[int, int] = (2, 3)
    break_threshold: int = 0
    max_durability: int = 100


@dataclass(frozen=True)
class InventoryConfig:
    max_inventory_size: int = 10
    item_escrow_hours: int = 24
    stolen_item_escrow_hours: int = 48


@dataclass(frozen=True)
class InsuranceTierConfig:
    protection: float
    daily_premium: int


@dataclass(frozen=True)
class InsuranceConfig:
    tiers: Dict[InsuranceTier, InsuranceTierConfig] = field(
        default_factory=lambda: {
            InsuranceTier.NONE: InsuranceTierConfig(protection=0.0, daily_premium=0),
            InsuranceTier.BRONZE: InsuranceTierConfig(protection=0.15, daily_premium=500),
            InsuranceTier.SILVER: InsuranceTierConfig(protection=0.30, daily_premium=2_000),
            InsuranceTier.GOLD: InsuranceTierConfig(protection=0.50, daily_premium=5_000),
        }
    )


ROB_CONFIG = RobConfig()
DURABILITY_CONFIG = DurabilityConfig()
INVENTORY_CONFIG = InventoryConfig()
INSURANCE_CONFIG = InsuranceConfig()
