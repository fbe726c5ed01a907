"""Keyed cooldown timers with lazy expiry"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from kingpin_gateway.infrastructure.database.models import Cooldown
from kingpin_gateway.utils.date_utils import as_utc, utc_now


def _target_key(target: Optional[object]) -> str:
    return "" if target is None else str(target)


class CooldownStore:
    """
    Cooldowns keyed by (subject, action_type, target).

    Entries are never required to be deleted: one whose expires_at <= now is
    inactive and is overwritten by the next set().
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def _get(self, subject_id: int, action_type: str, target: Optional[object]) -> Optional[Cooldown]:
        return self.db.scalars(
            select(Cooldown).where(
                Cooldown.subject_id == subject_id,
                Cooldown.action_type == action_type,
                Cooldown.target_key == _target_key(target),
            )
        ).first()

    def expires_at(self, subject_id: int, action_type: str, target: Optional[object] = None) -> Optional[datetime]:
        """Expiry of an active cooldown, None when inactive"""
        entry = self._get(subject_id, action_type, target)
        if entry is None:
            return None
        expires = as_utc(entry.expires_at)
        return expires if self.clock() < expires else None

    def is_active(self, subject_id: int, action_type: str, target: Optional[object] = None) -> bool:
        return self.expires_at(subject_id, action_type, target) is not None

    def remaining(self, subject_id: int, action_type: str, target: Optional[object] = None) -> timedelta:
        expires = self.expires_at(subject_id, action_type, target)
        if expires is None:
            return timedelta(0)
        return expires - self.clock()

    def set(self, subject_id: int, action_type: str, target: Optional[object], ttl: timedelta) -> datetime:
        """Start (or restart) a cooldown; does not commit"""
        expires = self.clock() + ttl
        entry = self._get(subject_id, action_type, target)
        if entry is None:
            entry = Cooldown(
                subject_id=subject_id,
                action_type=action_type,
                target_key=_target_key(target),
                expires_at=expires,
            )
            self.db.add(entry)
        else:
            entry.expires_at = expires
        self.db.flush()
        return expires

    def clear(self, subject_id: int, action_type: str, target: Optional[object] = None) -> bool:
        result = self.db.execute(
            delete(Cooldown).where(
                Cooldown.subject_id == subject_id,
                Cooldown.action_type == action_type,
                Cooldown.target_key == _target_key(target),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def cleanup_expired(self) -> int:
        """Drop expired entries. Optional housekeeping, not needed for correctness."""
        result = self.db.execute(
            delete(Cooldown)
            .where(Cooldown.expires_at <= self.clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
