"""Balance calculation for members' mess accounts.

Single balance formula used everywhere in the ledger:

    outstanding = sum(charge.total_cost) - sum(payment.amount)

Positive outstanding means the member owes the mess; negative means the
member is in credit. Balances are never stored: every caller recomputes
from the full current charge and payment sets, which keeps results correct
however change notifications are ordered.
"""

import logging
from decimal import Decimal
from typing import Iterable, NamedTuple

from messledger.models.charge import Charge, ChargeCategory
from messledger.models.payment import Payment
from messledger.services.date_range import DateRange
from messledger.services.parsers import quantize_money
from messledger.services.record_store import RecordKind, RecordStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BalanceSummary(NamedTuple):
    """Balance calculation result with per-category subtotals."""

    messing_total: Decimal
    bar_total: Decimal
    paid_total: Decimal
    outstanding: Decimal

    @property
    def charged_total(self) -> Decimal:
        return self.messing_total + self.bar_total


EMPTY_BALANCE = BalanceSummary(ZERO, ZERO, ZERO, ZERO)


def compute_balance(charges: Iterable[Charge], payments: Iterable[Payment]) -> BalanceSummary:
    """Compute a member's balance from their charges and payments.

    Pure and deterministic: the same record sets always give the same result.
    Sums are exact Decimal folds, rounded to minor units only at the end.

    Args:
        charges: Charges for one member (any order)
        payments: Payments for the same member (any order)

    Returns:
        BalanceSummary with messing, bar, paid totals and outstanding
    """
    messing_total = ZERO
    bar_total = ZERO
    for charge in charges:
        if charge.category == ChargeCategory.BAR:
            bar_total += charge.total_cost
        else:
            messing_total += charge.total_cost

    paid_total = sum((payment.amount for payment in payments), ZERO)

    return BalanceSummary(
        messing_total=quantize_money(messing_total),
        bar_total=quantize_money(bar_total),
        paid_total=quantize_money(paid_total),
        outstanding=quantize_money(messing_total + bar_total - paid_total),
    )


class BalanceCalculationService:
    """Load a member's records from the store and compute their balance."""

    def __init__(self, store: RecordStore):
        """Initialize with record store.

        Args:
            store: RecordStore holding charges and payments
        """
        self.store = store

    async def calculate_member_balance(
        self,
        member_id: int,
        date_range: DateRange | None = None,
    ) -> BalanceSummary:
        """Calculate balance for one member.

        Args:
            member_id: Member to calculate for
            date_range: Optional inclusive day range (None = all history)

        Returns:
            BalanceSummary (all zeros for a member with no records)
        """
        charges = await self.store.query(RecordKind.CHARGE, member_id=member_id, date_range=date_range)
        payments = await self.store.query(RecordKind.PAYMENT, member_id=member_id, date_range=date_range)
        return compute_balance(charges, payments)

    async def calculate_multiple_member_balances(
        self,
        member_ids: list[int],
        date_range: DateRange | None = None,
    ) -> dict[int, BalanceSummary]:
        """Calculate balances for many members from one read of each record kind.

        Args:
            member_ids: Members to calculate for
            date_range: Optional inclusive day range

        Returns:
            Dict mapping member_id to BalanceSummary
        """
        charges = await self.store.query(RecordKind.CHARGE, date_range=date_range)
        payments = await self.store.query(RecordKind.PAYMENT, date_range=date_range)
        return balances_by_member(member_ids, charges, payments)


def balances_by_member(
    member_ids: Iterable[int],
    charges: Iterable[Charge],
    payments: Iterable[Payment],
) -> dict[int, BalanceSummary]:
    """Group records by member and run compute_balance for each member."""
    charges_by_member: dict[int, list[Charge]] = {}
    for charge in charges:
        charges_by_member.setdefault(charge.member_id, []).append(charge)
    payments_by_member: dict[int, list[Payment]] = {}
    for payment in payments:
        payments_by_member.setdefault(payment.member_id, []).append(payment)

    return {
        member_id: compute_balance(
            charges_by_member.get(member_id, []),
            payments_by_member.get(member_id, []),
        )
        for member_id in member_ids
    }


__all__ = [
    "BalanceSummary",
    "BalanceCalculationService",
    "EMPTY_BALANCE",
    "balances_by_member",
    "compute_balance",
]
