"""POST /v1/rob and GET /v1/rob/precheck - robbery endpoints"""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from kingpin_gateway.api.dependencies import get_request_id, get_robbery_service
from kingpin_gateway.api.v1.schemas import PrecheckResponse, RobRequest, RobResponse
from kingpin_gateway.domain.exceptions import AccountNotFoundError, PrecheckRejection, TransactionFailure
from kingpin_gateway.services.robbery import RobberyService

router = APIRouter()


@router.post("/rob", response_model=RobResponse)
async def rob(
    request_body: RobRequest,
    request: Request,
    service: RobberyService = Depends(get_robbery_service),
):
    """
    Attempt to rob another player.

    Flow:
    1. Precheck eligibility (jail, target, self, wealth, immunity, cooldown)
    2. Compute success rate and resolve the outcome
    3. Commit wealth, XP, durability, cooldown and audit rows atomically
    4. Propagate to leaderboard, missions, achievements, notifications and feed
    """
    request_id = get_request_id(request)

    try:
        result = await service.attempt_robbery(request_body.attacker_id, request_body.target, request_id=request_id)
        return RobResponse(**asdict(result))

    except PrecheckRejection as e:
        logging.info(f"Robbery rejected: {e.reason.value}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail={"reason": e.reason.value, "message": e.message})

    except AccountNotFoundError as e:
        service.db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except TransactionFailure as e:
        logging.error(f"Robbery commit failed: {e}", extra={"request_id": request_id})
        return JSONResponse(status_code=503, content={"detail": str(e), "retryable": True})

    except Exception as e:
        service.db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/rob/precheck", response_model=PrecheckResponse)
def precheck(
    attacker_id: int = Query(..., gt=0, description="Robbing account id"),
    target: str = Query(..., min_length=1, description="Target username or display name"),
    service: RobberyService = Depends(get_robbery_service),
):
    """Read-only eligibility check with a success-rate preview"""
    try:
        result = service.can_rob(attacker_id, target)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    payload = asdict(result)
    payload["reason_code"] = result.reason_code.value if result.reason_code else None
    return PrecheckResponse(**payload)
