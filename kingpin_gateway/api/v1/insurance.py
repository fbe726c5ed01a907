"""/v1/insurance - robbery insurance status and purchases"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from kingpin_gateway.api.dependencies import get_insurance_store, get_request_id
from kingpin_gateway.api.v1.schemas import (
    InsurancePurchaseRequest,
    InsurancePurchaseResponse,
    InsuranceStatusResponse,
    InsuranceTierSchema,
)
from kingpin_gateway.domain.exceptions import AccountNotFoundError, InvalidInsuranceTierError
from kingpin_gateway.domain.insurance import parse_tier
from kingpin_gateway.services.insurance import InsuranceStore

router = APIRouter()


@router.get("/insurance/tiers", response_model=List[InsuranceTierSchema])
def list_tiers(store: InsuranceStore = Depends(get_insurance_store)):
    return [InsuranceTierSchema(**tier) for tier in store.available_tiers()]


@router.get("/insurance/{account_id}", response_model=InsuranceStatusResponse)
def get_insurance(account_id: int, store: InsuranceStore = Depends(get_insurance_store)):
    """Current policy; `effective_protection` is 0 once the premium is overdue"""
    if store.accounts.get(account_id) is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")

    status = store.get_status(account_id)
    return InsuranceStatusResponse(
        account_id=account_id,
        tier=status.tier.value,
        protection_fraction=status.protection_fraction,
        effective_protection=status.effective_protection,
        daily_premium=status.daily_premium,
        paid_at=status.paid_at,
        is_current=status.is_current,
    )


@router.post("/insurance/{account_id}", response_model=InsurancePurchaseResponse)
def purchase_insurance(
    account_id: int,
    request_body: InsurancePurchaseRequest,
    request: Request,
    store: InsuranceStore = Depends(get_insurance_store),
):
    """
    Buy, switch or drop a policy.

    A paid tier charges its first daily premium immediately. Not being able
    to afford it is a normal response with success=false.
    """
    request_id = get_request_id(request)

    try:
        tier = parse_tier(request_body.tier)
        result = store.purchase(account_id, tier)

    except InvalidInsuranceTierError as e:
        raise HTTPException(status_code=422, detail=str(e))

    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        store.db.rollback()
        logging.error(f"Insurance purchase failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return InsurancePurchaseResponse(
        success=result.success,
        tier=result.tier.value,
        cost=result.cost,
        error=result.error,
    )
