"""Fleet billing rollup: every member's balance on one sortable roster.

Rows are computed with the same compute_balance() used by the member
ledger, so a member's rollup row always agrees with their own ledger.
Sorting and filtering are views over the computed roster and never
change it.
"""

import inspect
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, NamedTuple, Sequence

from messledger.errors import SubscriptionError, ValidationError
from messledger.models.member import Member, MemberRole
from messledger.services.balance_service import balances_by_member
from messledger.services.date_range import DateRange
from messledger.services.record_store import RecordKind, RecordStore, Subscription

logger = logging.getLogger(__name__)


class MemberBalanceRow(NamedTuple):
    """One member's line on the billing roster."""

    member_id: int
    member_no: str
    rank: str
    name: str
    messing_total: Decimal
    bar_total: Decimal
    paid_total: Decimal
    outstanding: Decimal


SORTABLE_COLUMNS = frozenset(MemberBalanceRow._fields)
STRING_COLUMNS = frozenset({"member_no", "rank", "name"})


def build_rollup(members: Sequence[Member], charges, payments) -> list[MemberBalanceRow]:
    """Compute one row per billable member from full record sets."""
    billable = [m for m in members if m.role == MemberRole.MEMBER]
    balances = balances_by_member([m.id for m in billable], charges, payments)
    rows = [
        MemberBalanceRow(
            member_id=member.id,
            member_no=member.member_no or "",
            rank=member.rank or "",
            name=member.name or "Unknown",
            messing_total=balances[member.id].messing_total,
            bar_total=balances[member.id].bar_total,
            paid_total=balances[member.id].paid_total,
            outstanding=balances[member.id].outstanding,
        )
        for member in billable
    ]
    return sorted(rows, key=lambda r: (r.member_no, r.member_id))


def sort_rows(rows: Sequence[MemberBalanceRow], key: str, descending: bool = False) -> list[MemberBalanceRow]:
    """Sort by any column; ties are always broken by ascending member_id.

    String columns compare case-insensitively.

    Raises:
        ValidationError: If key is not a roster column
    """
    if key not in SORTABLE_COLUMNS:
        raise ValidationError(f"Cannot sort by '{key}'; choose one of {', '.join(sorted(SORTABLE_COLUMNS))}")

    def column(row: MemberBalanceRow):
        value = getattr(row, key)
        return value.lower() if key in STRING_COLUMNS else value

    # Two stable passes: member_id ascending first, then the column in the requested direction
    by_id = sorted(rows, key=lambda r: r.member_id)
    return sorted(by_id, key=column, reverse=descending)


def filter_rows(rows: Sequence[MemberBalanceRow], term: str | None) -> list[MemberBalanceRow]:
    """Case-insensitive substring match on name or member number; returns a new list."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(rows)
    return [row for row in rows if needle in row.name.lower() or needle in row.member_no.lower()]


def total_outstanding(rows: Sequence[MemberBalanceRow]) -> Decimal:
    """Sum of outstanding balances across rows."""
    return sum((row.outstanding for row in rows), Decimal("0.00"))


@dataclass
class RollupView:
    """Sort and search state over a full roster.

    rows holds the complete roster; visible_rows applies search then sort
    without modifying rows.
    """

    rows: list[MemberBalanceRow] = field(default_factory=list)
    sort_key: str = "outstanding"
    descending: bool = True
    search_term: str = ""

    def toggle_sort(self, key: str) -> None:
        """Click on a column header: same column flips direction, new column sorts ascending."""
        if key not in SORTABLE_COLUMNS:
            raise ValidationError(f"Cannot sort by '{key}'")
        if key == self.sort_key and not self.descending:
            self.descending = True
        else:
            self.sort_key = key
            self.descending = False

    @property
    def visible_rows(self) -> list[MemberBalanceRow]:
        return sort_rows(filter_rows(self.rows, self.search_term), self.sort_key, self.descending)

    @property
    def grand_total(self) -> Decimal:
        """Outstanding across the whole roster, regardless of search."""
        return total_outstanding(self.rows)


RollupCallback = Callable[[list[MemberBalanceRow]], Awaitable[None] | None]


class RollupWatch:
    """Live roster over members, charges and payments.

    Rebuilds the whole roster from the three latest snapshots on every
    change. cancel() must be called exactly once when the report closes.
    """

    def __init__(self, callback: RollupCallback, date_range: DateRange | None = None):
        self.callback = callback
        self.date_range = date_range
        self.latest: list[MemberBalanceRow] | None = None
        self._snapshots: dict[RecordKind, list] = {}
        self._subscriptions: list[Subscription] = []
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def _handler(self, kind: RecordKind):
        async def handle(records: list) -> None:
            self._snapshots[kind] = records
            await self._emit()

        return handle

    async def _emit(self) -> None:
        if self._cancelled or len(self._snapshots) < 3:
            return
        self.latest = build_rollup(
            self._snapshots[RecordKind.MEMBER],
            self._snapshots[RecordKind.CHARGE],
            self._snapshots[RecordKind.PAYMENT],
        )
        result = self.callback(self.latest)
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        """Release all three subscriptions.

        Raises:
            SubscriptionError: If the watch was already cancelled
        """
        if self._cancelled:
            raise SubscriptionError("Rollup watch already cancelled")
        self._cancelled = True
        for subscription in self._subscriptions:
            if subscription.active:
                subscription.cancel()
        self._subscriptions.clear()


class RollupService:
    """Cross-member billing report."""

    def __init__(self, store: RecordStore):
        """Initialize with record store."""
        self.store = store

    async def rollup(self, date_range: DateRange | None = None) -> list[MemberBalanceRow]:
        """One row per billable member, ordered by member number.

        Args:
            date_range: Optional inclusive day range (None = all history)
        """
        members = await self.store.query(RecordKind.MEMBER, role=MemberRole.MEMBER)
        charges = await self.store.query(RecordKind.CHARGE, date_range=date_range)
        payments = await self.store.query(RecordKind.PAYMENT, date_range=date_range)
        rows = build_rollup(members, charges, payments)
        logger.debug("Rollup computed for %d member(s)", len(rows))
        return rows

    async def watch_rollup(self, callback: RollupCallback, date_range: DateRange | None = None) -> RollupWatch:
        """Subscribe to the roster; the callback gets the full roster on every change."""
        watch = RollupWatch(callback, date_range)
        try:
            watch._subscriptions.append(
                await self.store.subscribe(
                    RecordKind.MEMBER, watch._handler(RecordKind.MEMBER), role=MemberRole.MEMBER
                )
            )
            for kind in (RecordKind.CHARGE, RecordKind.PAYMENT):
                watch._subscriptions.append(
                    await self.store.subscribe(kind, watch._handler(kind), date_range=date_range)
                )
        except Exception:
            watch.cancel()
            raise
        return watch


__all__ = [
    "MemberBalanceRow",
    "RollupService",
    "RollupView",
    "RollupWatch",
    "build_rollup",
    "filter_rows",
    "sort_rows",
    "total_outstanding",
]
