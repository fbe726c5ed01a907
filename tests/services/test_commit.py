"""Tests for the atomic robbery commit and stolen-item transfer"""

import pytest
from datetime import timedelta
from unittest.mock import patch
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from kingpin_gateway.domain.constants import BuffType, CooldownAction, EventType, ItemSlot
from kingpin_gateway.domain.exceptions import PrecheckRejection, TransactionFailure
from kingpin_gateway.domain.models import RobberyOutcome, StolenItem
from kingpin_gateway.infrastructure.database.models import Account, ActiveBuff, GameEvent, InventoryItem
from kingpin_gateway.infrastructure.database.repositories import AccountRepository
from kingpin_gateway.services.commit import commit_robbery, transfer_stolen_item
from kingpin_gateway.services.cooldowns import CooldownStore
from kingpin_gateway.services.equipment import EquipmentRegistry
from kingpin_gateway.utils.date_utils import as_utc
from tests.fakes import FakeDice, FixedClock


def _success(attacker_id: int, defender_id: int, net: int, payout: int = 0) -> RobberyOutcome:
    return RobberyOutcome(
        attacker_id=attacker_id,
        defender_id=defender_id,
        success=True,
        success_rate=0.75,
        roll=0.1,
        experience_gained=50,
        steal_fraction=0.2,
        gross_stolen=net + payout,
        insurance_payout=payout,
        net_stolen=net,
    )


def _failure(attacker_id: int, defender_id: int) -> RobberyOutcome:
    return RobberyOutcome(
        attacker_id=attacker_id,
        defender_id=defender_id,
        success=False,
        success_rate=0.75,
        roll=0.9,
        experience_gained=10,
    )


def _wealth(db: Session, account_id: int) -> int:
    return db.scalar(select(Account.wealth).where(Account.id == account_id))


@pytest.fixture
def pair(db: Session, make_account):
    attacker = make_account("tony", wealth=1_000, level=20)
    defender = make_account("vinnie", wealth=100_000, level=15, display_name="Vinnie")
    repo = AccountRepository(db)
    return repo.get_snapshot(attacker.id), repo.get_snapshot(defender.id)


def test_commit_success_moves_wealth_and_writes_everything(db: Session, clock: FixedClock, pair, make_item):
    attacker, defender = pair
    make_item(db.get(Account, attacker.id), "Pistol", combat_bonus=10, durability=50)
    make_item(db.get(Account, defender.id), "Vest", slot=ItemSlot.ARMOR, combat_bonus=5, durability=50)
    equipment = EquipmentRegistry(db, rng=FakeDice(randints=[2, 3]), clock=clock)

    receipt = commit_robbery(db, attacker, defender, _success(attacker.id, defender.id, 20_000), equipment, clock=clock)

    assert _wealth(db, attacker.id) == 21_000
    assert _wealth(db, defender.id) == 80_000
    assert receipt.attacker_weapon_damage.degraded is True
    assert receipt.defender_armor_damage.degraded is True
    assert receipt.cooldown_expires_at == clock() + timedelta(hours=24)
    assert CooldownStore(db, clock).is_active(attacker.id, CooldownAction.ROB_TARGET, defender.id)

    events = db.scalars(select(GameEvent).order_by(GameEvent.id)).all()
    assert [e.event_type for e in events] == [EventType.ROB, EventType.ROB_VICTIM]
    assert events[0].wealth_delta == 20_000
    assert events[1].wealth_delta == -20_000
    assert "Robbed Vinnie for $20,000" in events[0].description


def test_commit_conserves_total_wealth(db: Session, clock: FixedClock, pair):
    """Insurance payout stays with the defender; only net_stolen moves"""
    attacker, defender = pair
    before = db.scalar(select(func.sum(Account.wealth)))

    commit_robbery(
        db, attacker, defender, _success(attacker.id, defender.id, 10_000, payout=10_000),
        EquipmentRegistry(db, clock=clock), clock=clock,
    )

    assert db.scalar(select(func.sum(Account.wealth))) == before
    assert _wealth(db, defender.id) == 90_000


def test_commit_failure_still_sets_cooldown_and_xp(db: Session, clock: FixedClock, pair):
    """A failed roll moves no wealth but grants XP and starts the cooldown"""
    attacker, defender = pair
    xp_before = db.scalar(select(Account.experience).where(Account.id == attacker.id))

    commit_robbery(db, attacker, defender, _failure(attacker.id, defender.id), EquipmentRegistry(db, clock=clock), clock=clock)

    assert _wealth(db, attacker.id) == 1_000
    assert _wealth(db, defender.id) == 100_000
    assert db.scalar(select(Account.experience).where(Account.id == attacker.id)) == xp_before + 10
    assert CooldownStore(db, clock).is_active(attacker.id, CooldownAction.ROB_TARGET, defender.id)


def test_commit_rolls_back_when_degradation_fails(db: Session, clock: FixedClock, pair):
    """An error after the transfer leaves both balances untouched"""
    attacker, defender = pair
    equipment = EquipmentRegistry(db, clock=clock)

    with patch.object(EquipmentRegistry, "degrade_on_offense", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            commit_robbery(db, attacker, defender, _success(attacker.id, defender.id, 20_000), equipment, clock=clock)

    assert _wealth(db, attacker.id) == 1_000
    assert _wealth(db, defender.id) == 100_000
    assert db.scalar(select(func.count(GameEvent.id))) == 0
    assert CooldownStore(db, clock).is_active(attacker.id, CooldownAction.ROB_TARGET, defender.id) is False


def test_commit_database_error_is_retryable(db: Session, clock: FixedClock, pair):
    attacker, defender = pair
    error = OperationalError("UPDATE cooldown", {}, Exception("database is locked"))

    with patch.object(CooldownStore, "set", side_effect=error):
        with pytest.raises(TransactionFailure) as exc_info:
            commit_robbery(
                db, attacker, defender, _success(attacker.id, defender.id, 20_000),
                EquipmentRegistry(db, clock=clock), clock=clock,
            )

    assert exc_info.value.retryable is True
    assert _wealth(db, attacker.id) == 1_000
    assert _wealth(db, defender.id) == 100_000


def test_commit_fails_when_defender_cannot_cover(db: Session, clock: FixedClock, pair):
    """Guarded decrement: wealth spent since resolution aborts the commit"""
    attacker, defender = pair

    with pytest.raises(TransactionFailure):
        commit_robbery(
            db, attacker, defender, _success(attacker.id, defender.id, 150_000),
            EquipmentRegistry(db, clock=clock), clock=clock,
        )

    assert _wealth(db, defender.id) == 100_000


def test_commit_revalidates_cooldown(db: Session, clock: FixedClock, pair):
    """A cooldown written after the precheck blocks the commit"""
    attacker, defender = pair
    CooldownStore(db, clock).set(attacker.id, CooldownAction.ROB_TARGET, defender.id, timedelta(hours=24))
    db.commit()

    with pytest.raises(PrecheckRejection):
        commit_robbery(
            db, attacker, defender, _success(attacker.id, defender.id, 20_000),
            EquipmentRegistry(db, clock=clock), clock=clock,
        )

    assert _wealth(db, defender.id) == 100_000


def test_commit_revalidates_immunity(db: Session, clock: FixedClock, pair):
    attacker, defender = pair
    db.add(ActiveBuff(account_id=defender.id, buff_type=BuffType.IMMUNITY, expires_at=clock() + timedelta(hours=1)))
    db.commit()

    with pytest.raises(PrecheckRejection):
        commit_robbery(
            db, attacker, defender, _success(attacker.id, defender.id, 20_000),
            EquipmentRegistry(db, clock=clock), clock=clock,
        )


def test_commit_without_revalidation(db: Session, clock: FixedClock, pair):
    attacker, defender = pair
    CooldownStore(db, clock).set(attacker.id, CooldownAction.ROB_TARGET, defender.id, timedelta(hours=1))
    db.commit()

    commit_robbery(
        db, attacker, defender, _success(attacker.id, defender.id, 20_000),
        EquipmentRegistry(db, clock=clock), clock=clock, revalidate=False,
    )

    assert _wealth(db, defender.id) == 80_000


def test_commit_levels_up_attacker(db: Session, clock: FixedClock, make_account):
    """Level and tier are rewritten together from the new XP total"""
    repo = AccountRepository(db)
    attacker_row = make_account("climber", wealth=0, level=1)
    attacker_row.experience = 90
    db.commit()
    defender = repo.get_snapshot(make_account("mark", wealth=500).id)
    attacker = repo.get_snapshot(attacker_row.id)

    receipt = commit_robbery(
        db, attacker, defender, _success(attacker.id, defender.id, 100),
        EquipmentRegistry(db, clock=clock), clock=clock,
    )

    assert receipt.level_changed is True
    assert receipt.attacker_level == 2
    refreshed = repo.get_snapshot(attacker.id)
    assert refreshed.level == 2
    assert refreshed.experience == 140


def test_transfer_stolen_item(db: Session, clock: FixedClock, pair, make_item):
    attacker, defender = pair
    watch = make_item(db.get(Account, defender.id), "Gold Watch", slot=ItemSlot.BUSINESS, rarity="rare")
    stolen = StolenItem(id=watch.id, name="Gold Watch", type="business", tier="rare")

    result = transfer_stolen_item(db, stolen, attacker, defender, clock=clock)

    assert result == stolen
    item = db.get(InventoryItem, watch.id)
    assert item.account_id == attacker.id
    assert item.equipped is False
    assert item.is_escrowed is False
    thefts = db.scalars(select(GameEvent).where(GameEvent.event_type == EventType.ITEM_THEFT)).all()
    assert len(thefts) == 2


def test_transfer_stolen_item_escrows_when_attacker_full(db: Session, clock: FixedClock, pair, make_item):
    """A full attacker inventory holds the item in escrow for 48 hours"""
    attacker, defender = pair
    attacker_row = db.get(Account, attacker.id)
    for i in range(10):
        make_item(attacker_row, f"Junk {i}", slot=ItemSlot.NONE, equipped=False)
    watch = make_item(db.get(Account, defender.id), "Gold Watch", slot=ItemSlot.BUSINESS, rarity="rare")

    transfer_stolen_item(db, StolenItem(id=watch.id, name="Gold Watch", type="business", tier="rare"), attacker, defender, clock=clock)

    item = db.get(InventoryItem, watch.id)
    assert item.account_id == attacker.id
    assert item.is_escrowed is True
    assert as_utc(item.escrow_expires_at) == clock() + timedelta(hours=48)


def test_transfer_skips_item_no_longer_owned(db: Session, clock: FixedClock, pair, make_item):
    attacker, defender = pair
    watch = make_item(db.get(Account, attacker.id), "Gold Watch", slot=ItemSlot.BUSINESS)

    result = transfer_stolen_item(
        db, StolenItem(id=watch.id, name="Gold Watch", type="business", tier="common"), attacker, defender, clock=clock
    )

    assert result is None


def test_transfer_skips_item_broken_in_the_same_robbery(db: Session, clock: FixedClock, pair, make_item):
    attacker, defender = pair
    vest = make_item(db.get(Account, defender.id), "Vest", slot=ItemSlot.ARMOR, durability=0, equipped=False)

    result = transfer_stolen_item(
        db, StolenItem(id=vest.id, name="Vest", type="armor", tier="common"), attacker, defender, clock=clock
    )

    assert result is None
    assert db.get(InventoryItem, vest.id).account_id == defender.id
    assert db.scalar(select(func.count(GameEvent.id)).where(GameEvent.event_type == EventType.ITEM_THEFT)) == 0
