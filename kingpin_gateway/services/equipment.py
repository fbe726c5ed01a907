"""Equipment registry: equipped gear, acquisition and durability wear"""

import logging
import random
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from kingpin_gateway.domain.constants import (
    DURABILITY_CONFIG,
    INVENTORY_CONFIG,
    DurabilityConfig,
    InventoryConfig,
    ItemSlot,
)
from kingpin_gateway.domain.exceptions import ItemNotFoundError
from kingpin_gateway.domain.models import EquippedItem, EquippedItems, WearResult
from kingpin_gateway.domain.resolver import Dice
from kingpin_gateway.infrastructure.database.models import InventoryItem
from kingpin_gateway.infrastructure.database.repositories import InventoryRepository
from kingpin_gateway.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


def to_equipped_item(item: InventoryItem) -> EquippedItem:
    return EquippedItem(
        id=item.id,
        name=item.name,
        slot=ItemSlot(item.slot),
        rarity=item.rarity,
        combat_bonus=float(item.combat_bonus or 0.0),
        durability=item.durability,
        insurance_fraction=float(item.insurance_fraction or 0.0),
    )


class EquipmentRegistry:
    """Reads and mutates inventory rows. Never commits; callers own the transaction."""

    def __init__(
        self,
        db: Session,
        rng: Optional[Dice] = None,
        clock: Callable[[], datetime] = utc_now,
        durability: DurabilityConfig = DURABILITY_CONFIG,
        inventory: InventoryConfig = INVENTORY_CONFIG,
    ):
        self.db = db
        self.rng = rng or random.Random()
        self.clock = clock
        self.durability = durability
        self.inventory = inventory
        self.items = InventoryRepository(db)

    def get_equipped(self, account_id: int) -> EquippedItems:
        """Items contributing bonuses right now (equipped, durability > 0, not escrowed)"""
        equipped = EquippedItems()
        for item in self.items.equipped_items(account_id):
            slot = ItemSlot(item.slot)
            if slot == ItemSlot.WEAPON and equipped.weapon is None:
                equipped.weapon = to_equipped_item(item)
            elif slot == ItemSlot.ARMOR and equipped.armor is None:
                equipped.armor = to_equipped_item(item)
            elif slot == ItemSlot.BUSINESS and equipped.business is None:
                equipped.business = to_equipped_item(item)
            elif slot == ItemSlot.HOUSING and equipped.housing is None:
                equipped.housing = to_equipped_item(item)
        return equipped

    def list_inventory(self, account_id: int) -> List[InventoryItem]:
        return self.items.list_for_account(account_id)

    def has_space(self, account_id: int) -> bool:
        return self.items.count_unescrowed(account_id) < self.inventory.max_inventory_size

    def grant_item(
        self,
        account_id: int,
        name: str,
        slot: ItemSlot,
        rarity: str = "common",
        combat_bonus: float = 0.0,
        insurance_fraction: float = 0.0,
        durability: Optional[int] = None,
    ) -> InventoryItem:
        """Add an acquired item; a full inventory sends it to escrow"""
        has_space = self.has_space(account_id)
        item = InventoryItem(
            account_id=account_id,
            name=name,
            slot=slot.value,
            rarity=rarity,
            combat_bonus=combat_bonus,
            insurance_fraction=insurance_fraction,
            durability=self.durability.max_durability if durability is None else durability,
            equipped=False,
            is_escrowed=not has_space,
            escrow_expires_at=None if has_space else self.clock() + timedelta(hours=self.inventory.item_escrow_hours),
        )
        return self.items.add(item)

    def equip(self, account_id: int, item_id: int) -> InventoryItem:
        """Equip an owned, unbroken, non-escrowed item, unequipping whatever held its slot"""
        item = self.items.get(item_id)
        if item is None or item.account_id != account_id:
            raise ItemNotFoundError(f"Item {item_id} not owned by account {account_id}")
        if item.slot == ItemSlot.NONE.value or item.is_escrowed or item.durability <= 0:
            raise ItemNotFoundError(f"Item {item_id} cannot be equipped")

        current = self.items.equipped_in_slot(account_id, item.slot)
        if current is not None and current.id != item.id:
            current.equipped = False
        item.equipped = True
        self.db.flush()
        return item

    def _roll_decay(self, decay_range: Tuple[int, int]) -> int:
        low, high = decay_range
        return self.rng.randint(low, high)

    def _degrade(self, account_id: int, slot: ItemSlot, decay_range: Tuple[int, int]) -> WearResult:
        item = self.items.equipped_in_slot(account_id, slot.value)
        if item is None:
            return WearResult(degraded=False, destroyed=False)

        new_durability = self.items.wear(item, self._roll_decay(decay_range))
        destroyed = new_durability <= self.durability.break_threshold
        if destroyed:
            # Broken gear stays in inventory
            item.equipped = False
            logger.info(
                "Equipment destroyed",
                extra={"account_id": account_id, "item_id": item.id, "slot": slot.value},
            )
        self.db.flush()
        return WearResult(degraded=True, destroyed=destroyed, item_name=item.name if destroyed else None)

    def degrade_on_offense(self, account_id: int) -> WearResult:
        return self._degrade(account_id, ItemSlot.WEAPON, self.durability.decay_attacker)

    def degrade_on_defense(self, account_id: int) -> WearResult:
        return self._degrade(account_id, ItemSlot.ARMOR, self.durability.decay_defender)
