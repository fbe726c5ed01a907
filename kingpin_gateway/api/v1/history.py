"""GET /v1/rob/history - Fetch an account's robbery history"""

from fastapi import APIRouter, Depends, Query

from kingpin_gateway.api.dependencies import get_robbery_service
from kingpin_gateway.api.v1.schemas import RobHistoryItem, RobHistoryResponse
from kingpin_gateway.services.robbery import RobberyService

router = APIRouter()


@router.get("/rob/history", response_model=RobHistoryResponse)
def get_rob_history(
    account_id: int = Query(..., gt=0, description="Account identifier"),
    limit: int = Query(10, ge=1, le=100),
    service: RobberyService = Depends(get_robbery_service),
):
    """
    Retrieve recent robberies for an account.

    Returns:
        Events where the account robbed someone or was robbed, newest first
    """
    events = service.get_history(account_id, limit=limit)

    history_items = [
        RobHistoryItem(
            event_id=e.id,
            event_type=e.event_type,
            success=e.success,
            wealth_delta=e.wealth_delta,
            experience_delta=e.experience_delta,
            related_account_id=e.related_account_id,
            description=e.description,
            created_at=e.created_at.isoformat(),
        )
        for e in events
    ]

    return RobHistoryResponse(account_id=account_id, events=history_items)
