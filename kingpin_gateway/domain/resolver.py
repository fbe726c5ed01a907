"""Outcome resolver - turns a success probability into a robbery outcome"""

import math
from fractions import Fraction
from typing import Optional, Protocol, Sequence, TypeVar

from kingpin_gateway.domain.constants import ROB_CONFIG, RobConfig
from kingpin_gateway.domain.models import EquippedItems, RobberyOutcome, StolenItem

T = TypeVar("T")


class Dice(Protocol):
    """Subset of random.Random used by the resolver and durability rolls"""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...


def apply_fraction(amount: int, fraction: float) -> int:
    """floor(amount × fraction) in exact arithmetic, safe for very large wealth"""
    if amount <= 0 or fraction <= 0:
        return 0
    return math.floor(Fraction(amount) * Fraction(repr(fraction)))


def pick_stolen_item(defender_equipped: EquippedItems, rng: Dice) -> Optional[StolenItem]:
    """Uniform pick among the defender's equipped items; unequipped inventory is never at risk"""
    candidates = defender_equipped.all()
    if not candidates:
        return None
    item = rng.choice(candidates)
    return StolenItem(id=item.id, name=item.name, type=item.slot.value, tier=item.rarity)


def resolve_robbery(
    attacker_id: int,
    defender_id: int,
    success_rate: float,
    defender_wealth: int,
    protection: float,
    rng: Dice,
    defender_equipped: Optional[EquippedItems] = None,
    protection_source: Optional[str] = None,
    config: RobConfig = ROB_CONFIG,
) -> RobberyOutcome:
    """
    Roll a robbery attempt.

    Steps:
    1. One uniform draw against `success_rate` decides the outcome
    2. On success, steal a uniform fraction of the defender's current wealth
    3. Insurance returns floor(gross × protection); the rest is net stolen
    4. Independent low-probability roll to steal one equipped item
    5. Fixed XP reward, smaller on failure

    Invariant: insurance_payout + net_stolen == gross_stolen, net_stolen >= 0
    """
    roll = rng.random()
    success = roll < success_rate

    if not success:
        return RobberyOutcome(
            attacker_id=attacker_id,
            defender_id=defender_id,
            success=False,
            success_rate=success_rate,
            roll=roll,
            experience_gained=config.xp_reward_failure,
        )

    steal_fraction = rng.uniform(config.steal_fraction_min, config.steal_fraction_max)
    gross_stolen = apply_fraction(max(defender_wealth, 0), steal_fraction)

    protection = min(max(protection, 0.0), 1.0)
    insurance_payout = min(apply_fraction(gross_stolen, protection), gross_stolen)
    net_stolen = gross_stolen - insurance_payout

    item_stolen = None
    if defender_equipped is not None and rng.random() < config.item_theft_chance:
        item_stolen = pick_stolen_item(defender_equipped, rng)

    return RobberyOutcome(
        attacker_id=attacker_id,
        defender_id=defender_id,
        success=True,
        success_rate=success_rate,
        roll=roll,
        experience_gained=config.xp_reward_success,
        steal_fraction=steal_fraction,
        gross_stolen=gross_stolen,
        insurance_payout=insurance_payout,
        net_stolen=net_stolen,
        insurance_source=protection_source if insurance_payout > 0 else None,
        item_stolen=item_stolen,
    )
