"""GET /v1/inventory/{account_id} - items, durability and escrow state"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from kingpin_gateway.api.v1.schemas import InventoryItemSchema, InventoryResponse
from kingpin_gateway.infrastructure.database.repositories import AccountRepository
from kingpin_gateway.infrastructure.database.session import get_db
from kingpin_gateway.services.equipment import EquipmentRegistry
from kingpin_gateway.utils.date_utils import as_utc

router = APIRouter()


@router.get("/inventory/{account_id}", response_model=InventoryResponse)
def get_inventory(account_id: int, db: Session = Depends(get_db)):
    if AccountRepository(db).get(account_id) is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")

    items = EquipmentRegistry(db).list_inventory(account_id)
    return InventoryResponse(
        account_id=account_id,
        items=[
            InventoryItemSchema(
                id=item.id,
                name=item.name,
                slot=item.slot,
                rarity=item.rarity,
                combat_bonus=item.combat_bonus or 0.0,
                insurance_fraction=item.insurance_fraction or 0.0,
                durability=item.durability,
                equipped=item.equipped,
                is_escrowed=item.is_escrowed,
                escrow_expires_at=as_utc(item.escrow_expires_at),
            )
            for item in items
        ],
    )
