"""/v1/jobs - scheduled maintenance triggered by the platform cron"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from kingpin_gateway.api.dependencies import get_insurance_store, get_request_id
from kingpin_gateway.api.v1.schemas import CooldownCleanupResponse, PremiumRunResponse, SideEffectFailureSchema
from kingpin_gateway.infrastructure.database.repositories import SideEffectFailureRepository
from kingpin_gateway.infrastructure.database.session import get_db
from kingpin_gateway.services.cooldowns import CooldownStore
from kingpin_gateway.services.insurance import InsuranceStore

router = APIRouter()


@router.post("/jobs/insurance-premiums", response_model=PremiumRunResponse)
def run_insurance_premiums(request: Request, store: InsuranceStore = Depends(get_insurance_store)):
    """Charge every paid policy once; accounts that cannot pay are downgraded"""
    result = store.process_all_premiums()
    logging.info("Premium job finished", extra={"request_id": get_request_id(request), **result})
    return PremiumRunResponse(**result)


@router.post("/jobs/cooldown-cleanup", response_model=CooldownCleanupResponse)
def run_cooldown_cleanup(db: Session = Depends(get_db)):
    deleted = CooldownStore(db).cleanup_expired()
    db.commit()
    return CooldownCleanupResponse(deleted=deleted)


@router.get("/jobs/side-effect-failures", response_model=List[SideEffectFailureSchema])
def list_side_effect_failures(
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Pending dead-lettered side effects, oldest first"""
    return [
        SideEffectFailureSchema(
            id=f.id,
            effect=f.effect,
            account_id=f.account_id,
            robbery_id=f.robbery_id,
            error=f.error,
            attempts=f.attempts,
            created_at=f.created_at.isoformat(),
        )
        for f in SideEffectFailureRepository(db).pending(limit=limit)
    ]
