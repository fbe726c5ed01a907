"""SQLAlchemy ORM models for accounts, inventory, cooldowns, insurance and audit log"""

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from kingpin_gateway.utils.date_utils import utc_now

Base = declarative_base()


class Faction(Base):
    """Faction membership grants flat robbery bonuses (percentage points)"""

    __tablename__ = "faction"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False, unique=True)
    rob_success_bonus = Column(Float, nullable=False, default=0.0)
    defense_bonus = Column(Float, nullable=False, default=0.0)


class Account(Base):
    """Player ledger row - the unit of atomic mutation"""

    __tablename__ = "account"
    __table_args__ = (CheckConstraint("wealth >= 0", name="ck_account_wealth_non_negative"),)

    id = Column(Integer, primary_key=True)
    username = Column(Text, nullable=False, unique=True, index=True)
    display_name = Column(Text, nullable=True)
    wealth = Column(BigInteger, nullable=False, default=0)
    experience = Column(BigInteger, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    tier = Column(Text, nullable=False, default="Rookie")
    faction_id = Column(Integer, ForeignKey("faction.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    faction = relationship("Faction")
    items = relationship("InventoryItem", back_populates="account")
    insurance_policy = relationship("InsurancePolicy", back_populates="account", uselist=False)


class InventoryItem(Base):
    """Owned piece of equipment; broken items stay in inventory unequipped"""

    __tablename__ = "inventory_item"
    __table_args__ = (CheckConstraint("durability >= 0", name="ck_inventory_item_durability"),)

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    slot = Column(Text, nullable=False, default="none")
    rarity = Column(Text, nullable=False, default="common")
    combat_bonus = Column(Float, nullable=False, default=0.0)
    insurance_fraction = Column(Float, nullable=False, default=0.0)
    durability = Column(Integer, nullable=False, default=100)
    equipped = Column(Boolean, nullable=False, default=False)
    is_escrowed = Column(Boolean, nullable=False, default=False)
    escrow_expires_at = Column(DateTime(timezone=True), nullable=True)
    acquired_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    account = relationship("Account", back_populates="items")


class Cooldown(Base):
    """Keyed timer; an entry with expires_at <= now is simply inactive"""

    __tablename__ = "cooldown"
    __table_args__ = (
        UniqueConstraint("subject_id", "action_type", "target_key", name="uq_cooldown_key"),
    )

    id = Column(Integer, primary_key=True)
    subject_id = Column(Integer, nullable=False, index=True)
    action_type = Column(Text, nullable=False)
    target_key = Column(Text, nullable=False, default="")
    expires_at = Column(DateTime(timezone=True), nullable=False)


class InsurancePolicy(Base):
    """Robbery protection tier and premium state"""

    __tablename__ = "insurance_policy"

    account_id = Column(Integer, ForeignKey("account.id", ondelete="CASCADE"), primary_key=True)
    tier = Column(Text, nullable=False, default="none")
    last_premium_paid_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("Account", back_populates="insurance_policy")


class ActiveBuff(Base):
    """Timed buffs: robbery immunity and consumable attack/defense multipliers"""

    __tablename__ = "active_buff"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    buff_type = Column(Text, nullable=False)
    multiplier = Column(Float, nullable=False, default=1.0)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)


class GameEvent(Base):
    """Append-only audit log, one row per side of a transaction"""

    __tablename__ = "game_event"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(Text, nullable=False, index=True)
    wealth_delta = Column(BigInteger, nullable=False, default=0)
    experience_delta = Column(BigInteger, nullable=False, default=0)
    related_account_id = Column(Integer, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    success = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    related_account = relationship("Account", foreign_keys=[related_account_id])


class SideEffectFailure(Base):
    """Dead-letter record of a best-effort call that failed after commit"""

    __tablename__ = "side_effect_failure"

    id = Column(Integer, primary_key=True)
    effect = Column(Text, nullable=False)
    account_id = Column(Integer, nullable=True)
    robbery_id = Column(Text, nullable=True, index=True)
    payload = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    attempts = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
