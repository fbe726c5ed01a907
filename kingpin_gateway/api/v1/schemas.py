"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RobRequest(BaseModel):
    """Request body for POST /v1/rob"""

    attacker_id: int = Field(..., gt=0, description="Robbing account id")
    target: str = Field(..., min_length=1, description="Target username or display name, '@' optional")


class StolenItemSchema(BaseModel):
    id: int
    name: str
    type: str
    tier: str


class WearSchema(BaseModel):
    """Durability change on one piece of equipment"""

    degraded: bool
    destroyed: bool
    item_name: Optional[str] = None


class RobResponse(BaseModel):
    """Response for POST /v1/rob"""

    robbery_id: str
    success: bool
    outcome: str
    wealth_stolen: int
    insurance_saved: int
    item_stolen: Optional[StolenItemSchema] = None
    experience_gained: int
    attacker_weapon_damage: WearSchema
    defender_armor_damage: WearSchema
    cooldown_expires_at: datetime
    message: str
    side_effect_failures: List[str] = []


class PrecheckResponse(BaseModel):
    """Response for GET /v1/rob/precheck"""

    allowed: bool
    reason: Optional[str] = None
    reason_code: Optional[str] = None
    target_id: Optional[int] = None
    target_username: Optional[str] = None
    target_wealth: Optional[int] = None
    preview_success_rate: Optional[float] = None
    cooldown_expires_at: Optional[datetime] = None


class RobHistoryItem(BaseModel):
    event_id: int
    event_type: str
    success: bool
    wealth_delta: int
    experience_delta: int
    related_account_id: Optional[int] = None
    description: Optional[str] = None
    created_at: str


class RobHistoryResponse(BaseModel):
    """Response for GET /v1/rob/history"""

    account_id: int
    events: List[RobHistoryItem]


class InsuranceStatusResponse(BaseModel):
    account_id: int
    tier: str
    protection_fraction: float
    effective_protection: float
    daily_premium: int
    paid_at: Optional[datetime] = None
    is_current: bool


class InsurancePurchaseRequest(BaseModel):
    """Request body for POST /v1/insurance/{account_id}"""

    tier: str = Field(..., min_length=1, description="none | bronze | silver | gold")


class InsurancePurchaseResponse(BaseModel):
    success: bool
    tier: str
    cost: int
    error: Optional[str] = None


class InsuranceTierSchema(BaseModel):
    tier: str
    protection: float
    daily_premium: int
    monthly_premium: int


class PremiumRunResponse(BaseModel):
    """Response for POST /v1/jobs/insurance-premiums"""

    processed: int
    total_deducted: int
    lapses: int
    failed: int = 0


class CooldownCleanupResponse(BaseModel):
    deleted: int


class SideEffectFailureSchema(BaseModel):
    id: int
    effect: str
    account_id: Optional[int] = None
    robbery_id: Optional[str] = None
    error: Optional[str] = None
    attempts: int
    created_at: str


class InventoryItemSchema(BaseModel):
    id: int
    name: str
    slot: str
    rarity: str
    combat_bonus: float
    insurance_fraction: float
    durability: int
    equipped: bool
    is_escrowed: bool
    escrow_expires_at: Optional[datetime] = None


class InventoryResponse(BaseModel):
    """Response for GET /v1/inventory/{account_id}"""

    account_id: int
    items: List[InventoryItemSchema]
