"""Bar inventory API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from messledger.api.dependencies import inventory_service, operator_id
from messledger.api.schemas import (
    ERROR_RESPONSES,
    InventoryItemRequest,
    InventoryItemResponse,
    InventoryUpdateRequest,
)
from messledger.services.inventory_service import InventoryService

router = APIRouter(prefix="/api/inventory", tags=["inventory"], responses=ERROR_RESPONSES)


@router.get("", response_model=list[InventoryItemResponse])
async def list_inventory(
    available_only: bool = Query(default=False),
    service: InventoryService = Depends(inventory_service),
) -> list[InventoryItemResponse]:
    """Price list ordered by brand."""
    return [InventoryItemResponse.model_validate(item) for item in await service.list_items(available_only)]


@router.post("", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def add_inventory_item(
    payload: InventoryItemRequest,
    service: InventoryService = Depends(inventory_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> InventoryItemResponse:
    item = await service.add_item(
        payload.brand,
        price_bottle=payload.price_bottle,
        price_shot=payload.price_shot,
        available=payload.available,
        actor_id=actor_id,
    )
    return InventoryItemResponse.model_validate(item)


@router.patch("/{brand_id}", response_model=InventoryItemResponse)
async def update_inventory_item(
    brand_id: int,
    payload: InventoryUpdateRequest,
    service: InventoryService = Depends(inventory_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> InventoryItemResponse:
    """Change prices or availability; charges already recorded keep their price."""
    item = await service.update_item(
        brand_id,
        price_bottle=payload.price_bottle,
        price_shot=payload.price_shot,
        available=payload.available,
        actor_id=actor_id,
    )
    return InventoryItemResponse.model_validate(item)


__all__ = ["router"]
