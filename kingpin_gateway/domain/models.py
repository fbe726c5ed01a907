"""Domain models - pure Python dataclasses representing game entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from kingpin_gateway.domain.constants import InsuranceTier, ItemSlot, Tier


class RobberyStage(str, Enum):
    """Lifecycle of a single robbery request"""

    ELIGIBLE = "eligible"
    RATE_COMPUTED = "rate_computed"
    RESOLVED = "resolved"
    COMMITTED = "committed"
    PROPAGATED = "propagated"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    JAILED = "jailed"
    SELF_TARGET = "self_target"
    TARGET_NOT_FOUND = "target_not_found"
    NO_WEALTH = "no_wealth"
    IMMUNE = "immune"
    ON_COOLDOWN = "on_cooldown"


@dataclass
class AccountSnapshot:
    """Read-only view of an account used during resolution"""

    id: int
    username: str
    display_name: Optional[str]
    wealth: int
    experience: int
    level: int
    tier: Tier

    @property
    def name(self) -> str:
        return self.display_name or self.username


@dataclass
class EquippedItem:
    id: int
    name: str
    slot: ItemSlot
    rarity: str
    combat_bonus: float
    durability: int
    insurance_fraction: float = 0.0


@dataclass
class EquippedItems:
    """Items currently contributing to combat, keyed by slot"""

    weapon: Optional[EquippedItem] = None
    armor: Optional[EquippedItem] = None
    business: Optional[EquippedItem] = None
    housing: Optional[EquippedItem] = None

    def all(self) -> List[EquippedItem]:
        return [item for item in (self.weapon, self.armor, self.business, self.housing) if item is not None]

    @property
    def weapon_bonus(self) -> float:
        return self.weapon.combat_bonus if self.weapon else 0.0

    @property
    def armor_bonus(self) -> float:
        return self.armor.combat_bonus if self.armor else 0.0

    @property
    def housing_protection(self) -> float:
        return self.housing.insurance_fraction if self.housing else 0.0


@dataclass
class RateInputs:
    """Inputs to the success-rate formula"""

    attacker_level: int
    defender_level: int
    attacker_weapon_bonus: float = 0.0
    defender_armor_bonus: float = 0.0
    attacker_faction_bonus: float = 0.0
    defender_faction_bonus: float = 0.0
    attack_multiplier: float = 1.0
    defense_multiplier: float = 1.0


@dataclass
class InsuranceStatus:
    tier: InsuranceTier
    protection_fraction: float
    daily_premium: int
    paid_at: Optional[datetime]
    is_current: bool

    @property
    def effective_protection(self) -> float:
        """Protection applied to a payout; a lapsed policy pays nothing"""
        if not self.is_current or self.tier == InsuranceTier.NONE:
            return 0.0
        return self.protection_fraction


@dataclass
class InsurancePurchaseResult:
    success: bool
    tier: InsuranceTier
    cost: int
    error: Optional[str] = None


@dataclass
class PremiumChargeResult:
    account_id: int
    status: str  # "paid" | "lapsed" | "skipped"
    previous_tier: InsuranceTier
    new_tier: InsuranceTier
    amount_deducted: int = 0

    @property
    def downgraded(self) -> bool:
        return self.status == "lapsed"


@dataclass
class StolenItem:
    id: int
    name: str
    type: str
    tier: str


@dataclass
class WearResult:
    """Equipment durability change from one robbery"""

    degraded: bool = False
    destroyed: bool = False
    item_name: Optional[str] = None


@dataclass
class RobberyOutcome:
    """Resolved (not yet committed) result of a robbery attempt"""

    attacker_id: int
    defender_id: int
    success: bool
    success_rate: float
    roll: float
    experience_gained: int
    steal_fraction: float = 0.0
    gross_stolen: int = 0
    insurance_payout: int = 0
    net_stolen: int = 0
    insurance_source: Optional[str] = None  # "policy" | "housing"
    item_stolen: Optional[StolenItem] = None


@dataclass
class CommitReceipt:
    """What the atomic commit actually wrote"""

    attacker_weapon_damage: WearResult
    defender_armor_damage: WearResult
    cooldown_expires_at: datetime
    attacker_level: int
    attacker_tier: Tier
    level_changed: bool


@dataclass
class RobPrecheck:
    allowed: bool
    reason: Optional[str] = None
    reason_code: Optional[RejectionReason] = None
    target_id: Optional[int] = None
    target_username: Optional[str] = None
    target_wealth: Optional[int] = None
    preview_success_rate: Optional[float] = None
    cooldown_expires_at: Optional[datetime] = None


@dataclass
class RobberyResult:
    """
    Response of an executed robbery, consumed by chat and web front-ends.

    `success` means the robbery was committed; `outcome` says whether the roll won.
    """

    robbery_id: str
    success: bool
    outcome: str  # "success" | "failure"
    wealth_stolen: int
    insurance_saved: int
    item_stolen: Optional[StolenItem]
    experience_gained: int
    attacker_weapon_damage: WearResult
    defender_armor_damage: WearResult
    cooldown_expires_at: datetime
    message: str
    side_effect_failures: List[str] = field(default_factory=list)
