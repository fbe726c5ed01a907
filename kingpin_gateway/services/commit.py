"""Atomic commit of a resolved robbery, plus the follow-up stolen-item transfer"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kingpin_gateway.domain.constants import (
    INVENTORY_CONFIG,
    ROB_CONFIG,
    BuffType,
    CooldownAction,
    EventType,
    InventoryConfig,
    RobConfig,
)
from kingpin_gateway.domain.exceptions import InsufficientWealthError, PrecheckRejection, TransactionFailure
from kingpin_gateway.domain.messages import attacker_event_description, defender_event_description
from kingpin_gateway.domain.models import AccountSnapshot, CommitReceipt, RejectionReason, RobberyOutcome, StolenItem
from kingpin_gateway.infrastructure.database.repositories import (
    AccountRepository,
    BuffRepository,
    GameEventRepository,
    InventoryRepository,
)
from kingpin_gateway.infrastructure.observability.metrics import item_theft_counter, transaction_failure_counter
from kingpin_gateway.services.cooldowns import CooldownStore
from kingpin_gateway.services.equipment import EquipmentRegistry
from kingpin_gateway.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


def _revalidate(db: Session, cooldowns: CooldownStore, outcome: RobberyOutcome, defender: AccountSnapshot, now: datetime) -> None:
    """Repeat the cooldown and immunity checks inside the commit transaction"""
    if cooldowns.is_active(outcome.attacker_id, CooldownAction.ROB_TARGET, outcome.defender_id):
        raise PrecheckRejection(
            RejectionReason.ON_COOLDOWN, f"You already robbed {defender.name} recently."
        )
    if BuffRepository(db).has_buff(outcome.defender_id, BuffType.IMMUNITY, now):
        raise PrecheckRejection(
            RejectionReason.IMMUNE, f"{defender.name} is the current Juicernaut and cannot be robbed!"
        )


def commit_robbery(
    db: Session,
    attacker: AccountSnapshot,
    defender: AccountSnapshot,
    outcome: RobberyOutcome,
    equipment: EquipmentRegistry,
    clock: Callable[[], datetime] = utc_now,
    config: RobConfig = ROB_CONFIG,
    revalidate: bool = True,
) -> CommitReceipt:
    """
    Apply the whole economic effect of one robbery in a single transaction.

    Steps (all or nothing):
    1. Move net_stolen from defender to attacker with relative updates
    2. Add experience to the attacker, rewriting level and tier together
    3. Wear down attacker weapon and defender armor
    4. Start the (attacker, defender) cooldown, failed attempts included
    5. Append one audit event per side

    Raises:
        PrecheckRejection: cooldown/immunity changed since the precheck
        TransactionFailure: anything the database refused; nothing persisted
    """
    accounts = AccountRepository(db)
    events = GameEventRepository(db)
    cooldowns = CooldownStore(db, clock)

    try:
        if revalidate:
            _revalidate(db, cooldowns, outcome, defender, clock())

        if outcome.success and outcome.net_stolen > 0:
            accounts.transfer(defender.id, attacker.id, outcome.net_stolen)

        level, tier, level_changed = accounts.add_experience(attacker.id, outcome.experience_gained)

        weapon_damage = equipment.degrade_on_offense(attacker.id)
        armor_damage = equipment.degrade_on_defense(defender.id)

        cooldown_expires_at = cooldowns.set(
            attacker.id,
            CooldownAction.ROB_TARGET,
            defender.id,
            timedelta(hours=config.cooldown_hours),
        )

        events.append(
            account_id=attacker.id,
            event_type=EventType.ROB,
            description=attacker_event_description(outcome, defender.name),
            wealth_delta=outcome.net_stolen,
            experience_delta=outcome.experience_gained,
            related_account_id=defender.id,
            success=outcome.success,
        )
        events.append(
            account_id=defender.id,
            event_type=EventType.ROB_VICTIM,
            description=defender_event_description(outcome, attacker.name),
            wealth_delta=-outcome.net_stolen,
            related_account_id=attacker.id,
            # From the defender's side a failed robbery is a successful defense
            success=not outcome.success,
        )

        db.commit()
    except PrecheckRejection:
        db.rollback()
        raise
    except (SQLAlchemyError, InsufficientWealthError) as e:
        db.rollback()
        transaction_failure_counter.inc()
        logger.error(
            f"Robbery transaction rolled back: {e}",
            extra={"attacker_id": attacker.id, "defender_id": defender.id, "step": "commit"},
        )
        raise TransactionFailure("Robbery could not be completed, please try again") from e
    except Exception:
        db.rollback()
        transaction_failure_counter.inc()
        raise

    return CommitReceipt(
        attacker_weapon_damage=weapon_damage,
        defender_armor_damage=armor_damage,
        cooldown_expires_at=cooldown_expires_at,
        attacker_level=level,
        attacker_tier=tier,
        level_changed=level_changed,
    )


def transfer_stolen_item(
    db: Session,
    item: StolenItem,
    attacker: AccountSnapshot,
    defender: AccountSnapshot,
    clock: Callable[[], datetime] = utc_now,
    inventory: InventoryConfig = INVENTORY_CONFIG,
) -> Optional[StolenItem]:
    """
    Move a stolen item to the attacker in its own transaction.

    The item is unequipped; if the attacker's inventory is full it lands in
    escrow for the stolen-item window instead. Returns None when the item is
    no longer the defender's or broke during the robbery it was stolen in.
    """
    items = InventoryRepository(db)
    events = GameEventRepository(db)

    try:
        row = items.get(item.id)
        if row is None or row.account_id != defender.id:
            db.rollback()
            item_theft_counter.labels(destination="failed").inc()
            logger.warning(
                "Stolen item no longer owned by defender",
                extra={"item_id": item.id, "defender_id": defender.id, "attacker_id": attacker.id},
            )
            return None

        if row.durability <= 0:
            db.rollback()
            item_theft_counter.labels(destination="broken").inc()
            logger.info(
                "Stolen item broke before transfer",
                extra={"item_id": item.id, "defender_id": defender.id, "attacker_id": attacker.id},
            )
            return None

        has_space = items.count_unescrowed(attacker.id) < inventory.max_inventory_size

        row.equipped = False
        row.account_id = attacker.id
        row.is_escrowed = not has_space
        row.escrow_expires_at = (
            None if has_space else clock() + timedelta(hours=inventory.stolen_item_escrow_hours)
        )

        events.append(
            account_id=attacker.id,
            event_type=EventType.ITEM_THEFT,
            description=f"Stole {item.name} from {defender.name}" + ("" if has_space else " (held in escrow)"),
            related_account_id=defender.id,
        )
        events.append(
            account_id=defender.id,
            event_type=EventType.ITEM_THEFT,
            description=f"{item.name} was stolen by {attacker.name}",
            related_account_id=attacker.id,
            success=False,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        item_theft_counter.labels(destination="failed").inc()
        raise TransactionFailure("Stolen item transfer could not be completed") from e

    item_theft_counter.labels(destination="inventory" if has_space else "escrow").inc()
    return item
