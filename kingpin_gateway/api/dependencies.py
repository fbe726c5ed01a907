"""Dependency injection for FastAPI endpoints"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from kingpin_gateway.infrastructure.clients.factions import FactionClient
from kingpin_gateway.infrastructure.clients.feed import FeedClient
from kingpin_gateway.infrastructure.clients.leaderboard import LeaderboardClient
from kingpin_gateway.infrastructure.clients.notifications import NotificationClient
from kingpin_gateway.infrastructure.clients.progress import ProgressClient
from kingpin_gateway.infrastructure.database.repositories import SideEffectFailureRepository
from kingpin_gateway.infrastructure.database.session import SessionLocal, get_db
from kingpin_gateway.services.insurance import InsuranceStore
from kingpin_gateway.services.robbery import RobberyService
from kingpin_gateway.services.side_effects import SideEffectPropagator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def record_side_effect_failure(
    effect: str,
    account_id: Optional[int],
    robbery_id: Optional[str],
    payload: Dict[str, Any],
    error: str,
) -> None:
    """Dead-letter sink: writes in its own session, apart from the robbery transaction"""
    db = SessionLocal()
    try:
        SideEffectFailureRepository(db).record(effect, account_id, robbery_id, payload, error)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_side_effect_propagator() -> SideEffectPropagator:
    """Provide a propagator wired to the HTTP collaborators"""
    return SideEffectPropagator(
        leaderboard=LeaderboardClient(),
        progress=ProgressClient(),
        notifications=NotificationClient(),
        feed=FeedClient(),
        factions=FactionClient(),
        failure_sink=record_side_effect_failure,
    )


def get_robbery_service(
    db: Session = Depends(get_db),
    propagator: SideEffectPropagator = Depends(get_side_effect_propagator),
) -> RobberyService:
    return RobberyService(db, propagator)


def get_insurance_store(db: Session = Depends(get_db)) -> InsuranceStore:
    return InsuranceStore(db)
