"""Tests for the equipment registry and durability wear"""

import pytest
from datetime import timedelta
from sqlalchemy import update
from sqlalchemy.orm import Session
from kingpin_gateway.domain.constants import ItemSlot
from kingpin_gateway.domain.exceptions import ItemNotFoundError
from kingpin_gateway.domain.formulas import calculate_rob_success_rate
from kingpin_gateway.domain.models import RateInputs
from kingpin_gateway.infrastructure.database.models import InventoryItem
from kingpin_gateway.services.equipment import EquipmentRegistry
from tests.fakes import FakeDice, FixedClock


def test_get_equipped_ignores_unusable_items(db: Session, make_account, make_item):
    """Unequipped, broken and escrowed items contribute nothing"""
    account = make_account("gearhead")
    make_item(account, "Spare Knife", combat_bonus=3, equipped=False)
    make_item(account, "Broken Vest", slot=ItemSlot.ARMOR, combat_bonus=5, durability=0)
    escrowed = make_item(account, "Held Pistol", combat_bonus=9)
    escrowed.is_escrowed = True
    make_item(account, "Safehouse", slot=ItemSlot.HOUSING, insurance_fraction=0.1)
    db.commit()

    equipped = EquipmentRegistry(db).get_equipped(account.id)

    assert equipped.weapon is None
    assert equipped.armor is None
    assert equipped.weapon_bonus == 0.0
    assert equipped.housing_protection == 0.1


def test_degrade_on_offense(db: Session, make_account, make_item):
    account = make_account("fighter")
    weapon = make_item(account, "Bat", durability=50)

    wear = EquipmentRegistry(db, rng=FakeDice(randints=[3])).degrade_on_offense(account.id)
    db.commit()

    assert wear.degraded is True
    assert wear.destroyed is False
    assert weapon.durability == 47
    assert weapon.equipped is True


def test_degrade_applies_to_stored_durability(db: Session, make_account, make_item):
    """Wear lands on the current row, not on a copy loaded before another robbery wore it"""
    account = make_account("tank")
    vest = make_item(account, "Vest", slot=ItemSlot.ARMOR, durability=100)
    assert vest.durability == 100

    db.execute(
        update(InventoryItem)
        .where(InventoryItem.id == vest.id)
        .values(durability=InventoryItem.durability - 50)
        .execution_options(synchronize_session=False)
    )
    wear = EquipmentRegistry(db, rng=FakeDice(randints=[2])).degrade_on_defense(account.id)
    db.commit()

    assert wear.destroyed is False
    assert db.get(InventoryItem, vest.id).durability == 48


def test_degrade_to_zero_unequips_and_keeps_item(db: Session, make_account, make_item):
    """Durability 1 minus a step of 2 breaks the item; it stays in inventory"""
    attacker = make_account("attacker", level=10)
    defender = make_account("defender", level=10)
    weapon = make_item(attacker, "Rusty Pipe", combat_bonus=10, durability=1)
    registry = EquipmentRegistry(db, rng=FakeDice(randints=[2]))

    before = registry.get_equipped(attacker.id).weapon_bonus
    wear = registry.degrade_on_offense(attacker.id)
    db.commit()

    assert before == 10
    assert wear.destroyed is True
    assert wear.item_name == "Rusty Pipe"
    assert weapon.durability == 0
    assert weapon.equipped is False
    assert db.get(InventoryItem, weapon.id) is not None

    rate = calculate_rob_success_rate(
        RateInputs(
            attacker_level=10,
            defender_level=10,
            attacker_weapon_bonus=registry.get_equipped(attacker.id).weapon_bonus,
            defender_armor_bonus=registry.get_equipped(defender.id).armor_bonus,
        )
    )
    assert rate == pytest.approx(0.60)


def test_degrade_without_equipment(db: Session, make_account):
    account = make_account("unarmed")
    registry = EquipmentRegistry(db)

    offense = registry.degrade_on_offense(account.id)
    defense = registry.degrade_on_defense(account.id)

    assert (offense.degraded, offense.destroyed) == (False, False)
    assert (defense.degraded, defense.destroyed) == (False, False)


def test_degrade_on_defense_hits_armor_only(db: Session, make_account, make_item):
    account = make_account("tank")
    weapon = make_item(account, "Knife", durability=40)
    armor = make_item(account, "Kevlar", slot=ItemSlot.ARMOR, durability=40)

    EquipmentRegistry(db, rng=FakeDice(randints=[2])).degrade_on_defense(account.id)
    db.commit()

    assert armor.durability == 38
    assert weapon.durability == 40


def test_grant_item_goes_to_escrow_when_full(db: Session, clock: FixedClock, make_account, make_item):
    account = make_account("hoarder")
    for i in range(10):
        make_item(account, f"Junk {i}", slot=ItemSlot.NONE, equipped=False)
    registry = EquipmentRegistry(db, clock=clock)

    assert registry.has_space(account.id) is False
    item = registry.grant_item(account.id, "Golden Gun", ItemSlot.WEAPON, rarity="legendary", combat_bonus=15)

    assert item.is_escrowed is True
    assert item.escrow_expires_at == clock() + timedelta(hours=24)


def test_equip_swaps_slot(db: Session, make_account, make_item):
    account = make_account("collector")
    old = make_item(account, "Knife", combat_bonus=2)
    new = make_item(account, "Shotgun", combat_bonus=8, equipped=False)
    registry = EquipmentRegistry(db)

    registry.equip(account.id, new.id)
    db.commit()

    assert new.equipped is True
    assert old.equipped is False
    assert registry.get_equipped(account.id).weapon_bonus == 8


def test_equip_rejects_broken_or_foreign_items(db: Session, make_account, make_item):
    owner = make_account("owner")
    other = make_account("other")
    broken = make_item(owner, "Snapped Bat", durability=0, equipped=False)
    registry = EquipmentRegistry(db)

    with pytest.raises(ItemNotFoundError):
        registry.equip(owner.id, broken.id)
    with pytest.raises(ItemNotFoundError):
        registry.equip(other.id, broken.id)
