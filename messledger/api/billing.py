"""Billing rollup API routes."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from messledger.api.dependencies import rollup_service
from messledger.api.schemas import ERROR_RESPONSES, RollupResponse, RollupRowResponse
from messledger.config import get_settings
from messledger.services.date_range import DateRange
from messledger.services.export_service import ExportFormat, export_rollup, rollup_filename
from messledger.services.rollup_service import RollupService, RollupView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/rollup", tags=["billing"], responses=ERROR_RESPONSES)


async def _view(
    service: RollupService,
    sort: str,
    direction: str,
    search: Optional[str],
    start: Optional[str],
    end: Optional[str],
) -> RollupView:
    rows = await service.rollup(DateRange.from_strings(start, end))
    # visible_rows rejects unknown sort columns
    return RollupView(rows=rows, sort_key=sort, descending=direction == "desc", search_term=search or "")


@router.get("", response_model=RollupResponse)
async def get_rollup(
    sort: str = Query(default="outstanding"),
    direction: str = Query(default="desc", pattern="^(asc|desc)$"),
    search: Optional[str] = Query(default=None, description="Name or member number substring"),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    service: RollupService = Depends(rollup_service),
) -> RollupResponse:
    """
    Every member's balance, sorted and filtered.

    Returns:
        200: Visible rows and the outstanding total of the whole roster
        400: Unknown sort column or bad date range
    """
    view = await _view(service, sort, direction, search, start, end)
    return RollupResponse(
        rows=[RollupRowResponse(**row._asdict()) for row in view.visible_rows],
        total_outstanding=view.grand_total,
    )


@router.get("/export")
async def export_billing_summary(
    format: str = Query(default=ExportFormat.CSV, pattern="^(csv|xlsx)$"),
    sort: str = Query(default="outstanding"),
    direction: str = Query(default="desc", pattern="^(asc|desc)$"),
    search: Optional[str] = Query(default=None),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    service: RollupService = Depends(rollup_service),
) -> Response:
    """Download the visible roster in its current order."""
    view = await _view(service, sort, direction, search, start, end)
    rows = view.visible_rows
    filename = rollup_filename(date.today(), format)
    logger.info("Exported billing summary: %d row(s) to %s", len(rows), filename)
    return Response(
        content=export_rollup(rows, format, currency=get_settings().currency),
        media_type=ExportFormat.CONTENT_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


__all__ = ["router"]
