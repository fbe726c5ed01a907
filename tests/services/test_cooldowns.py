"""Tests for the keyed cooldown store"""

from datetime import timedelta
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from kingpin_gateway.domain.constants import CooldownAction
from kingpin_gateway.infrastructure.database.models import Cooldown
from kingpin_gateway.services.cooldowns import CooldownStore
from tests.fakes import FixedClock


def test_set_and_is_active(db: Session, clock: FixedClock):
    """A fresh cooldown blocks until its expiry passes"""
    store = CooldownStore(db, clock)
    expires = store.set(1, CooldownAction.ROB_TARGET, 2, timedelta(hours=24))
    db.commit()

    assert expires == clock() + timedelta(hours=24)
    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is True
    assert store.remaining(1, CooldownAction.ROB_TARGET, 2) == timedelta(hours=24)

    clock.advance(hours=23, minutes=59)
    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is True

    clock.advance(minutes=1)
    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is False
    assert store.remaining(1, CooldownAction.ROB_TARGET, 2) == timedelta(0)


def test_cooldown_is_per_target(db: Session, clock: FixedClock):
    """Robbing B does not block robbing C"""
    store = CooldownStore(db, clock)
    store.set(1, CooldownAction.ROB_TARGET, 2, timedelta(hours=24))

    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is True
    assert store.is_active(1, CooldownAction.ROB_TARGET, 3) is False
    assert store.is_active(2, CooldownAction.ROB_TARGET, 1) is False


def test_untargeted_cooldown(db: Session, clock: FixedClock):
    """Jail has no target and does not collide with targeted keys"""
    store = CooldownStore(db, clock)
    store.set(1, CooldownAction.JAIL, None, timedelta(minutes=30))

    assert store.is_active(1, CooldownAction.JAIL) is True
    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is False


def test_set_overwrites_expired_entry(db: Session, clock: FixedClock):
    """Re-setting a key updates the single row in place"""
    store = CooldownStore(db, clock)
    store.set(1, CooldownAction.ROB_TARGET, 2, timedelta(hours=1))
    clock.advance(hours=2)
    store.set(1, CooldownAction.ROB_TARGET, 2, timedelta(hours=1))
    db.commit()

    assert store.is_active(1, CooldownAction.ROB_TARGET, 2) is True
    assert db.scalar(select(func.count(Cooldown.id))) == 1


def test_clear(db: Session, clock: FixedClock):
    store = CooldownStore(db, clock)
    store.set(1, CooldownAction.JAIL, None, timedelta(hours=1))

    assert store.clear(1, CooldownAction.JAIL) is True
    assert store.is_active(1, CooldownAction.JAIL) is False
    assert store.clear(1, CooldownAction.JAIL) is False


def test_cleanup_expired(db: Session, clock: FixedClock):
    """Only expired entries are removed"""
    store = CooldownStore(db, clock)
    store.set(1, CooldownAction.ROB_TARGET, 2, timedelta(hours=1))
    store.set(1, CooldownAction.ROB_TARGET, 3, timedelta(hours=48))
    db.commit()

    clock.advance(hours=2)
    assert store.cleanup_expired() == 1
    db.commit()

    assert store.is_active(1, CooldownAction.ROB_TARGET, 3) is True
    assert db.scalar(select(func.count(Cooldown.id))) == 1
