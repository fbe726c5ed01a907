"""Data access layer for accounts, inventory, buffs and the audit log"""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session

from kingpin_gateway.domain.constants import Tier
from kingpin_gateway.domain.exceptions import AccountNotFoundError, InsufficientWealthError
from kingpin_gateway.domain.formulas import progression_for_xp
from kingpin_gateway.domain.models import AccountSnapshot
from kingpin_gateway.infrastructure.database.models import (
    Account,
    ActiveBuff,
    Faction,
    GameEvent,
    InventoryItem,
    SideEffectFailure,
)


class AccountRepository:
    """Repository for the account ledger. Wealth only moves through relative updates."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, account_id: int) -> Optional[Account]:
        return self.db.get(Account, account_id)

    def get_snapshot(self, account_id: int) -> AccountSnapshot:
        """Fresh read of an account's economic state"""
        row = self.db.execute(
            select(
                Account.id,
                Account.username,
                Account.display_name,
                Account.wealth,
                Account.experience,
                Account.level,
                Account.tier,
            ).where(Account.id == account_id)
        ).first()
        if row is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return AccountSnapshot(
            id=row.id,
            username=row.username,
            display_name=row.display_name,
            wealth=int(row.wealth),
            experience=int(row.experience),
            level=row.level,
            tier=Tier(row.tier),
        )

    def find_by_identifier(self, identifier: str) -> Optional[AccountSnapshot]:
        """Case-insensitive match on username or display name"""
        clean = identifier.strip().lstrip("@").lower()
        if not clean:
            return None
        account_id = self.db.execute(
            select(Account.id)
            .where(
                or_(
                    func.lower(Account.username) == clean,
                    func.lower(Account.display_name) == clean,
                )
            )
            .order_by(Account.id)
            .limit(1)
        ).scalar()
        if account_id is None:
            return None
        return self.get_snapshot(account_id)

    def credit(self, account_id: int, amount: int) -> None:
        if amount <= 0:
            return
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(wealth=Account.wealth + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AccountNotFoundError(f"Account {account_id} not found")

    def debit(self, account_id: int, amount: int) -> None:
        """Decrement wealth; matches no row (and raises) if it would go negative"""
        if amount <= 0:
            return
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.wealth >= amount)
            .values(wealth=Account.wealth - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientWealthError(f"Account {account_id} cannot cover {amount}")

    def transfer(self, from_account_id: int, to_account_id: int, amount: int) -> None:
        self.debit(from_account_id, amount)
        self.credit(to_account_id, amount)

    def add_experience(self, account_id: int, amount: int) -> Tuple[int, Tier, bool]:
        """
        Increment experience and rewrite level and tier together.

        Returns (level, tier, level_changed).
        """
        if amount:
            self.db.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(experience=Account.experience + amount)
                .execution_options(synchronize_session=False)
            )
        row = self.db.execute(
            select(Account.experience, Account.level).where(Account.id == account_id)
        ).first()
        if row is None:
            raise AccountNotFoundError(f"Account {account_id} not found")

        level, tier = progression_for_xp(int(row.experience))
        self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(level=level, tier=tier.value)
            .execution_options(synchronize_session=False)
        )
        return level, tier, level != row.level

    def faction_bonuses(self, account_id: int) -> Tuple[float, float]:
        """(rob_success_bonus, defense_bonus) of the account's faction, zeros without one"""
        row = self.db.execute(
            select(Faction.rob_success_bonus, Faction.defense_bonus)
            .join(Account, Account.faction_id == Faction.id)
            .where(Account.id == account_id)
        ).first()
        if row is None:
            return 0.0, 0.0
        return float(row.rob_success_bonus or 0.0), float(row.defense_bonus or 0.0)


class InventoryRepository:
    """Repository for owned equipment"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, item_id: int) -> Optional[InventoryItem]:
        return self.db.get(InventoryItem, item_id)

    def list_for_account(self, account_id: int) -> List[InventoryItem]:
        return list(
            self.db.scalars(
                select(InventoryItem)
                .where(InventoryItem.account_id == account_id)
                .order_by(InventoryItem.id)
            )
        )

    def equipped_items(self, account_id: int) -> List[InventoryItem]:
        """Items that currently contribute bonuses"""
        return list(
            self.db.scalars(
                select(InventoryItem)
                .where(
                    InventoryItem.account_id == account_id,
                    InventoryItem.equipped.is_(True),
                    InventoryItem.is_escrowed.is_(False),
                    InventoryItem.durability > 0,
                )
                .order_by(InventoryItem.id)
            )
        )

    def equipped_in_slot(self, account_id: int, slot: str) -> Optional[InventoryItem]:
        return self.db.scalars(
            select(InventoryItem)
            .where(
                InventoryItem.account_id == account_id,
                InventoryItem.slot == slot,
                InventoryItem.equipped.is_(True),
                InventoryItem.durability > 0,
            )
            .order_by(InventoryItem.id)
            .limit(1)
        ).first()

    def wear(self, item: InventoryItem, decay: int) -> int:
        """Relative durability decrement floored at zero; returns the stored value"""
        remaining = InventoryItem.durability - decay
        self.db.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item.id)
            .values(durability=case((remaining > 0, remaining), else_=0))
            .execution_options(synchronize_session=False)
        )
        self.db.expire(item, ["durability"])
        return item.durability

    def count_unescrowed(self, account_id: int) -> int:
        return self.db.scalar(
            select(func.count(InventoryItem.id)).where(
                InventoryItem.account_id == account_id,
                InventoryItem.is_escrowed.is_(False),
            )
        ) or 0

    def add(self, item: InventoryItem) -> InventoryItem:
        self.db.add(item)
        self.db.flush()
        return item


class BuffRepository:
    """Repository for timed buffs"""

    def __init__(self, db: Session):
        self.db = db

    def _active(self, account_id: int, buff_type: str, now: datetime):
        return select(ActiveBuff).where(
            ActiveBuff.account_id == account_id,
            ActiveBuff.buff_type == buff_type,
            ActiveBuff.is_active.is_(True),
            or_(ActiveBuff.expires_at.is_(None), ActiveBuff.expires_at > now),
        )

    def has_buff(self, account_id: int, buff_type: str, now: datetime) -> bool:
        return self.db.scalars(self._active(account_id, buff_type, now).limit(1)).first() is not None

    def strongest_multiplier(self, account_id: int, buff_type: str, now: datetime) -> float:
        """Largest active multiplier of a type; 1.0 when none is active"""
        buffs = self.db.scalars(self._active(account_id, buff_type, now)).all()
        multipliers = [b.multiplier for b in buffs if b.multiplier and b.multiplier > 0]
        return max(multipliers) if multipliers else 1.0


class GameEventRepository:
    """Append-only audit log"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        account_id: int,
        event_type: str,
        description: str,
        wealth_delta: int = 0,
        experience_delta: int = 0,
        related_account_id: Optional[int] = None,
        success: bool = True,
    ) -> GameEvent:
        event = GameEvent(
            account_id=account_id,
            event_type=event_type,
            wealth_delta=wealth_delta,
            experience_delta=experience_delta,
            related_account_id=related_account_id,
            success=success,
            description=description,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def history(self, account_id: int, event_types: Iterable[str], limit: int = 10) -> List[GameEvent]:
        """Most recent events of the given types for an account"""
        return list(
            self.db.scalars(
                select(GameEvent)
                .where(GameEvent.account_id == account_id, GameEvent.event_type.in_(list(event_types)))
                .order_by(GameEvent.created_at.desc(), GameEvent.id.desc())
                .limit(limit)
            )
        )


class SideEffectFailureRepository:
    """Dead-letter queue for failed side effects"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        effect: str,
        account_id: Optional[int],
        robbery_id: Optional[str],
        payload: Optional[dict],
        error: str,
    ) -> SideEffectFailure:
        failure = SideEffectFailure(
            effect=effect,
            account_id=account_id,
            robbery_id=robbery_id,
            payload=payload,
            error=error,
        )
        self.db.add(failure)
        self.db.flush()
        return failure

    def pending(self, limit: int = 100) -> List[SideEffectFailure]:
        return list(
            self.db.scalars(
                select(SideEffectFailure)
                .where(SideEffectFailure.status == "pending")
                .order_by(SideEffectFailure.created_at)
                .limit(limit)
            )
        )
