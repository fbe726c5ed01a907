"""Pytest fixtures for testing"""

import pytest
from typing import Generator, Optional
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from kingpin_gateway.api.dependencies import get_side_effect_propagator
from kingpin_gateway.api.main import create_app
from kingpin_gateway.domain.constants import ItemSlot
from kingpin_gateway.domain.formulas import tier_from_level, total_xp_for_level
from kingpin_gateway.infrastructure.database.models import Account, Base, Faction, InventoryItem
from kingpin_gateway.infrastructure.database.session import get_db
from kingpin_gateway.services.side_effects import SideEffectPropagator
from tests.fakes import FixedClock, RecordingCollaborator, RecordingSink


# In-memory database shared by every session in a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def collaborator() -> RecordingCollaborator:
    return RecordingCollaborator()


@pytest.fixture
def failure_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def propagator(collaborator: RecordingCollaborator, failure_sink: RecordingSink) -> SideEffectPropagator:
    return SideEffectPropagator(*[collaborator] * 5, failure_sink=failure_sink)


@pytest.fixture
def app(db: Session, propagator: SideEffectPropagator) -> FastAPI:
    """Application wired to the test database and fake collaborators"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_side_effect_propagator] = lambda: propagator
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client with test database"""
    return TestClient(app)


@pytest.fixture
def make_account(db: Session):
    """Factory for accounts whose stored level and tier agree with their experience"""

    def _make(
        username: str,
        wealth: int = 0,
        level: int = 1,
        display_name: Optional[str] = None,
        faction: Optional[Faction] = None,
    ) -> Account:
        account = Account(
            username=username,
            display_name=display_name,
            wealth=wealth,
            experience=total_xp_for_level(level - 1),
            level=level,
            tier=tier_from_level(level).value,
            faction_id=faction.id if faction else None,
        )
        db.add(account)
        db.commit()
        return account

    return _make


@pytest.fixture
def make_item(db: Session):
    """Factory for inventory items, equipped by default"""

    def _make(
        account: Account,
        name: str,
        slot: ItemSlot = ItemSlot.WEAPON,
        combat_bonus: float = 0.0,
        durability: int = 100,
        equipped: bool = True,
        rarity: str = "common",
        insurance_fraction: float = 0.0,
    ) -> InventoryItem:
        item = InventoryItem(
            account_id=account.id,
            name=name,
            slot=slot.value,
            rarity=rarity,
            combat_bonus=combat_bonus,
            insurance_fraction=insurance_fraction,
            durability=durability,
            equipped=equipped,
        )
        db.add(item)
        db.commit()
        return item

    return _make
