"""Daily ledger API route."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from messledger.api.dependencies import bulk_entry_service, operator_id
from messledger.api.schemas import ERROR_RESPONSES, BulkEntryRequest, BulkEntryResponse
from messledger.services.bulk_entry_service import BulkEntryService, DraftRow

router = APIRouter(prefix="/api/bulk-charges", tags=["bulk-entry"], responses=ERROR_RESPONSES)


@router.post("", response_model=BulkEntryResponse, status_code=status.HTTP_201_CREATED)
async def submit_bulk_charges(
    payload: BulkEntryRequest,
    service: BulkEntryService = Depends(bulk_entry_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> BulkEntryResponse:
    """
    Post one messing charge per valid selected row, all or nothing.

    Unlike a fresh draft row, a submitted row counts as selected unless it
    is sent with "selected": false.

    Returns:
        201: Posted and skipped member IDs (skipped rows had no positive cost)
        400: Empty selection, bad date or unknown member
        503: Store rejected the batch; nothing was written
    """
    rows = {row.member_id: DraftRow(selected=row.selected, cost=row.cost, note=row.note) for row in payload.rows}
    result = await service.submit_bulk_charges(
        charge_date=payload.charge_date,
        item_type=payload.item_type,
        default_description=payload.description,
        default_unit_price=payload.unit_price,
        rows=rows,
        actor_id=actor_id,
    )
    return BulkEntryResponse.from_result(result)


__all__ = ["router"]
