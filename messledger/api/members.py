"""Member ledger API routes: view, single entries and statement export."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from messledger.api.dependencies import balance_service, ledger_service, operator_id
from messledger.api.schemas import (
    ERROR_RESPONSES,
    AddBarChargeRequest,
    AddChargeRequest,
    AddPaymentRequest,
    BalanceResponse,
    ChargeResponse,
    MemberLedgerResponse,
    MemberResponse,
    PaymentResponse,
)
from messledger.config import get_settings
from messledger.services.balance_service import BalanceCalculationService
from messledger.services.date_range import DateRange
from messledger.services.export_service import ExportFormat, export_statement, statement_filename
from messledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["members"], responses=ERROR_RESPONSES)


@router.get("", response_model=list[MemberResponse])
async def list_members(service: LedgerService = Depends(ledger_service)) -> list[MemberResponse]:
    """Billable members ordered by member number."""
    return [
        MemberResponse(member_id=m.id, member_no=m.member_no, rank=m.rank, name=m.name)
        for m in await service.members.list_members()
    ]


@router.get("/{member_id}/ledger", response_model=MemberLedgerResponse)
async def get_ledger(
    member_id: int,
    start: Optional[str] = Query(default=None, description="First day, YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, description="Last day, YYYY-MM-DD"),
    service: LedgerService = Depends(ledger_service),
) -> MemberLedgerResponse:
    """
    Charges and payments of one member, newest first, with the balance.

    Returns:
        200: MemberLedgerResponse
        400: Malformed or inverted date range
        404: Unknown member
    """
    ledger = await service.get_member_ledger(member_id, DateRange.from_strings(start, end))
    return MemberLedgerResponse.from_ledger(ledger)


@router.get("/{member_id}/balance", response_model=BalanceResponse)
async def get_balance(
    member_id: int,
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    service: LedgerService = Depends(ledger_service),
    balances: BalanceCalculationService = Depends(balance_service),
) -> BalanceResponse:
    """Totals and outstanding amount of one member, without the record lists."""
    date_range = DateRange.from_strings(start, end)
    await service.members.lookup(member_id)
    return BalanceResponse.from_summary(await balances.calculate_member_balance(member_id, date_range))


@router.post("/{member_id}/charges", response_model=ChargeResponse, status_code=status.HTTP_201_CREATED)
async def add_charge(
    member_id: int,
    payload: AddChargeRequest,
    service: LedgerService = Depends(ledger_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> ChargeResponse:
    """Record a free-form messing charge."""
    charge = await service.add_charge(
        member_id,
        description=payload.description,
        cost=payload.cost,
        charge_date=payload.charge_date,
        actor_id=actor_id,
    )
    return ChargeResponse.from_charge(charge)


@router.post("/{member_id}/bar-charges", response_model=ChargeResponse, status_code=status.HTTP_201_CREATED)
async def add_bar_charge(
    member_id: int,
    payload: AddBarChargeRequest,
    service: LedgerService = Depends(ledger_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> ChargeResponse:
    """
    Record bar consumption at the brand's current price.

    Returns:
        201: ChargeResponse with the frozen unit price
        422: Brand removed or unavailable (stale_price)
    """
    charge = await service.add_bar_charge(
        member_id,
        brand_id=payload.brand_id,
        unit_type=payload.unit_type,
        quantity=payload.quantity,
        charge_date=payload.charge_date,
        actor_id=actor_id,
    )
    return ChargeResponse.from_charge(charge)


@router.post("/{member_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def add_payment(
    member_id: int,
    payload: AddPaymentRequest,
    service: LedgerService = Depends(ledger_service),
    actor_id: Optional[int] = Depends(operator_id),
) -> PaymentResponse:
    """Record a payment; zero and negative amounts are rejected."""
    payment = await service.add_payment(
        member_id,
        amount=payload.amount,
        payment_date=payload.payment_date,
        comment=payload.comment,
        actor_id=actor_id,
    )
    return PaymentResponse.model_validate(payment)


@router.get("/{member_id}/statement/export")
async def export_member_statement(
    member_id: int,
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    format: str = Query(default=ExportFormat.CSV, pattern="^(csv|xlsx)$"),
    service: LedgerService = Depends(ledger_service),
) -> Response:
    """Download a member's purchase history for a date range."""
    statement = await service.get_statement(member_id, DateRange.from_strings(start, end))
    content = export_statement(statement, format, currency=get_settings().currency)
    filename = statement_filename(statement, format)
    logger.info("Exported statement of member %s: %d charge(s) to %s", member_id, len(statement.charges), filename)
    return Response(
        content=content,
        media_type=ExportFormat.CONTENT_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


__all__ = ["router"]
