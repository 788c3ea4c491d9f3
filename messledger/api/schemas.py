"""Request and response schemas for the ledger API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from messledger.errors import LedgerError
from messledger.models.charge import Charge
from messledger.services.balance_service import BalanceSummary
from messledger.services.bulk_entry_service import BulkEntryResult, MealType
from messledger.services.inventory_service import UnitType
from messledger.services.ledger_service import MemberLedger

# Amounts are parsed by the services so that bad input maps to validation_error
Amount = Union[str, int, float]


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every ledger error response."""

    error: ErrorDetail

    @classmethod
    def from_error(cls, exc: LedgerError) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=exc.code, message=exc.message))


# Error bodies documented on every router
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input (validation_error)"},
    404: {"model": ErrorResponse, "description": "Unknown member (member_not_found)"},
    422: {"model": ErrorResponse, "description": "Bar brand removed or unavailable (stale_price)"},
    503: {"model": ErrorResponse, "description": "Record store rejected the write (store_unavailable)"},
}


class LineItemResponse(BaseModel):
    label: str
    unit_cost: Decimal
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class ChargeResponse(BaseModel):
    """One charge as shown on a ledger."""

    id: int
    member_id: int
    charge_date: date
    category: str
    items: list[LineItemResponse]
    total_cost: Decimal
    is_bulk_entry: bool
    created_at: datetime

    @classmethod
    def from_charge(cls, charge: Charge) -> "ChargeResponse":
        return cls(
            id=charge.id,
            member_id=charge.member_id,
            charge_date=charge.charge_date,
            category=charge.category.value,
            items=[LineItemResponse.model_validate(item) for item in charge.items],
            total_cost=charge.total_cost,
            is_bulk_entry=charge.is_bulk_entry,
            created_at=charge.created_at,
        )


class PaymentResponse(BaseModel):
    id: int
    member_id: int
    payment_date: date
    amount: Decimal
    comment: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BalanceResponse(BaseModel):
    messing_total: Decimal
    bar_total: Decimal
    paid_total: Decimal
    outstanding: Decimal

    @classmethod
    def from_summary(cls, summary: BalanceSummary) -> "BalanceResponse":
        return cls(**summary._asdict())


class MemberResponse(BaseModel):
    member_id: int
    member_no: str
    rank: str
    name: str


class MemberLedgerResponse(BaseModel):
    """Response schema for GET /api/members/{id}/ledger."""

    member: MemberResponse
    charges: list[ChargeResponse]
    payments: list[PaymentResponse]
    balance: BalanceResponse

    @classmethod
    def from_ledger(cls, ledger: MemberLedger) -> "MemberLedgerResponse":
        return cls(
            member=MemberResponse(**ledger.member._asdict()),
            charges=[ChargeResponse.from_charge(c) for c in ledger.charges],
            payments=[PaymentResponse.model_validate(p) for p in ledger.payments],
            balance=BalanceResponse.from_summary(ledger.balance),
        )


class AddChargeRequest(BaseModel):
    description: str = Field(min_length=1)
    cost: Amount
    charge_date: date | None = None


class AddBarChargeRequest(BaseModel):
    brand_id: int
    unit_type: UnitType
    quantity: int = 1
    charge_date: date | None = None


class AddPaymentRequest(BaseModel):
    amount: Amount
    payment_date: date | None = None
    comment: str | None = None


class BulkRowRequest(BaseModel):
    """One row of the daily ledger; None cost/note take the shared defaults."""

    member_id: int
    # A submitted row is one the client wants posted; an untouched DraftRow is not
    selected: bool = Field(default=True, description="Rows are posted unless sent with selected=false")
    cost: Amount | None = None
    note: str | None = None


class BulkEntryRequest(BaseModel):
    charge_date: date
    item_type: MealType = MealType.TEA
    description: str = ""
    unit_price: Amount = ""
    rows: list[BulkRowRequest]


class BulkEntryResponse(BaseModel):
    posted_count: int
    posted: list[int]
    skipped: list[int]
    charge_ids: list[int]

    @classmethod
    def from_result(cls, result: BulkEntryResult) -> "BulkEntryResponse":
        return cls(**result._asdict())


class RollupRowResponse(BaseModel):
    member_id: int
    member_no: str
    rank: str
    name: str
    messing_total: Decimal
    bar_total: Decimal
    paid_total: Decimal
    outstanding: Decimal


class RollupResponse(BaseModel):
    rows: list[RollupRowResponse]
    total_outstanding: Decimal
    """Across the whole roster, not only the visible rows"""


class InventoryItemResponse(BaseModel):
    id: int
    brand: str
    price_bottle: Decimal
    price_shot: Decimal
    available: bool

    model_config = ConfigDict(from_attributes=True)


class InventoryItemRequest(BaseModel):
    brand: str = Field(min_length=1)
    price_bottle: Amount
    price_shot: Amount
    available: bool = True


class InventoryUpdateRequest(BaseModel):
    price_bottle: Amount | None = None
    price_shot: Amount | None = None
    available: bool | None = None
