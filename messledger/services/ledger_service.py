"""Member ledger: one member's charges, payments and balance.

Used both by a member viewing their own bill and by an operator drilling
into one account. Also hosts the single-member entry operations: a
free-form messing charge, a bar charge priced from inventory, and a payment.
"""

import inspect
import logging
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, NamedTuple

from messledger.errors import SubscriptionError, ValidationError
from messledger.models.charge import Charge, ChargeCategory
from messledger.models.payment import Payment
from messledger.services.balance_service import BalanceSummary, compute_balance
from messledger.services.date_range import DateRange, resolve_entry_date
from messledger.services.inventory_service import InventoryService, UnitType
from messledger.services.member_service import MemberInfo, MemberService
from messledger.services.parsers import MAX_AMOUNT, parse_amount, quantize_money
from messledger.services.record_store import RecordKind, RecordStore, Subscription

logger = logging.getLogger(__name__)


class MemberLedger(NamedTuple):
    """Read model of one member's account."""

    member: MemberInfo
    charges: list[Charge]
    """Newest first"""
    payments: list[Payment]
    """Newest first"""
    balance: BalanceSummary


class MemberStatement(NamedTuple):
    """Dated purchase history of one member."""

    member: MemberInfo
    date_range: DateRange | None
    charges: list[Charge]
    total: Decimal


def newest_first(records: list, date_attr: str) -> list:
    """Sort by day descending; same-day records by ID descending (latest entry first)."""
    return sorted(records, key=lambda r: (getattr(r, date_attr), r.id), reverse=True)


def build_member_ledger(member: MemberInfo, charges: list[Charge], payments: list[Payment]) -> MemberLedger:
    """Assemble the ledger read model from full record sets."""
    return MemberLedger(
        member=member,
        charges=newest_first(charges, "charge_date"),
        payments=newest_first(payments, "payment_date"),
        balance=compute_balance(charges, payments),
    )


LedgerCallback = Callable[[MemberLedger], Awaitable[None] | None]


class LedgerWatch:
    """Live view of one member's ledger.

    Owns one charge subscription and one payment subscription. The two
    streams arrive independently and in no guaranteed order, so each update
    rebuilds the ledger from both full snapshots. cancel() must be called
    exactly once when the member is deselected or the view closes.
    """

    def __init__(self, member: MemberInfo, callback: LedgerCallback):
        self.member = member
        self.callback = callback
        self.latest: MemberLedger | None = None
        self._charges: list[Charge] | None = None
        self._payments: list[Payment] | None = None
        self._subscriptions: list[Subscription] = []
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    async def _on_charges(self, records: list[Charge]) -> None:
        self._charges = records
        await self._emit()

    async def _on_payments(self, records: list[Payment]) -> None:
        self._payments = records
        await self._emit()

    async def _emit(self) -> None:
        # Wait for the first snapshot of both streams
        if self._charges is None or self._payments is None or self._cancelled:
            return
        self.latest = build_member_ledger(self.member, self._charges, self._payments)
        result = self.callback(self.latest)
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        """Release both subscriptions.

        Raises:
            SubscriptionError: If the watch was already cancelled
        """
        if self._cancelled:
            raise SubscriptionError(f"Ledger watch for member {self.member.member_id} already cancelled")
        self._cancelled = True
        for subscription in self._subscriptions:
            if subscription.active:
                subscription.cancel()
        self._subscriptions.clear()


class LedgerService:
    """Per-member ledger reads and single-entry writes."""

    def __init__(
        self,
        store: RecordStore,
        allow_future_dated: bool = False,
        today: Callable[[], date] = date.today,
    ):
        """Initialize ledger service.

        Args:
            store: RecordStore with charges, payments and inventory
            allow_future_dated: Accept entry dates after today
            today: Clock used for default and future-date checks
        """
        self.store = store
        self.members = MemberService(store)
        self.inventory = InventoryService(store)
        self.allow_future_dated = allow_future_dated
        self.today = today

    async def get_member_ledger(self, member_id: int, date_range: DateRange | None = None) -> MemberLedger:
        """Charges and payments of one member (newest first) with their balance.

        Args:
            member_id: Member to load
            date_range: Optional inclusive day range (None = all history)

        Raises:
            MemberNotFoundError: If the member does not exist
        """
        member = await self.members.lookup(member_id)
        charges = await self.store.query(RecordKind.CHARGE, member_id=member_id, date_range=date_range)
        payments = await self.store.query(RecordKind.PAYMENT, member_id=member_id, date_range=date_range)
        return build_member_ledger(member, charges, payments)

    async def watch_member_ledger(
        self,
        member_id: int,
        callback: LedgerCallback,
        date_range: DateRange | None = None,
    ) -> LedgerWatch:
        """Subscribe to a member's ledger.

        The callback receives the full ledger once both streams have delivered
        their first snapshot, then again after every change to either stream.

        Raises:
            MemberNotFoundError: If the member does not exist
        """
        member = await self.members.lookup(member_id)
        watch = LedgerWatch(member, callback)
        try:
            watch._subscriptions.append(
                await self.store.subscribe(
                    RecordKind.CHARGE, watch._on_charges, member_id=member_id, date_range=date_range
                )
            )
            watch._subscriptions.append(
                await self.store.subscribe(
                    RecordKind.PAYMENT, watch._on_payments, member_id=member_id, date_range=date_range
                )
            )
        except Exception:
            watch.cancel()
            raise
        logger.debug("Watching ledger of member %s", member_id)
        return watch

    async def add_charge(
        self,
        member_id: int,
        description: str,
        cost,
        charge_date=None,
        actor_id: int | None = None,
    ) -> Charge:
        """Record a free-form messing charge.

        Args:
            member_id: Member being charged
            description: Line item label
            cost: Positive amount
            charge_date: Billing day (default: today)
            actor_id: Operator recording the charge

        Raises:
            ValidationError: Empty description, non-positive cost or future date
            MemberNotFoundError: If the member does not exist
            StoreError: If the store rejects the write
        """
        if not description or not description.strip():
            raise ValidationError("Description is required")
        amount = self._positive_amount(cost, "Charge cost")
        day = resolve_entry_date(charge_date, self.today(), allow_future=self.allow_future_dated)
        await self.members.lookup(member_id)

        charge_id = await self.store.create(
            RecordKind.CHARGE,
            {
                "member_id": member_id,
                "charge_date": day,
                "category": ChargeCategory.MESSING,
                "items": [{"label": description.strip(), "unit_cost": amount, "quantity": 1}],
                "total_cost": amount,
            },
            actor_id=actor_id,
        )
        logger.info("Recorded messing charge: member_id=%s, amount=%s, date=%s, id=%s", member_id, amount, day, charge_id)
        return await self.store.get(RecordKind.CHARGE, charge_id)

    async def add_bar_charge(
        self,
        member_id: int,
        brand_id: int,
        unit_type: UnitType,
        quantity: int = 1,
        charge_date=None,
        actor_id: int | None = None,
    ) -> Charge:
        """Record bar consumption priced from the current inventory.

        The unit price is read at entry time and frozen into the charge;
        later inventory price changes do not affect it.

        Raises:
            ValidationError: Bad unit type, quantity < 1 or future date
            StalePriceError: Brand removed or unavailable
            MemberNotFoundError: If the member does not exist
            StoreError: If the store rejects the write
        """
        try:
            unit_type = UnitType(unit_type)
        except ValueError as e:
            raise ValidationError(f"Unit type must be 'shot' or 'bottle', got {unit_type!r}") from e
        try:
            quantity = int(quantity)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Quantity must be a whole number, got {quantity!r}") from e
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        day = resolve_entry_date(charge_date, self.today(), allow_future=self.allow_future_dated)
        await self.members.lookup(member_id)

        price = await self.inventory.require_available(brand_id)
        unit_cost = quantize_money(price.unit_price(unit_type))
        if unit_cost * quantity > MAX_AMOUNT:
            raise ValidationError(f"Bar charge total cannot exceed {MAX_AMOUNT}")
        total = quantize_money(unit_cost * quantity)

        charge_id = await self.store.create(
            RecordKind.CHARGE,
            {
                "member_id": member_id,
                "charge_date": day,
                "category": ChargeCategory.BAR,
                "items": [
                    {
                        "label": f"{price.brand} ({unit_type.value})",
                        "unit_cost": unit_cost,
                        "quantity": quantity,
                    }
                ],
                "total_cost": total,
            },
            actor_id=actor_id,
        )
        logger.info(
            "Recorded bar charge: member_id=%s, brand=%s, %d x %s @ %s = %s, id=%s",
            member_id,
            price.brand,
            quantity,
            unit_type.value,
            unit_cost,
            total,
            charge_id,
        )
        return await self.store.get(RecordKind.CHARGE, charge_id)

    async def add_payment(
        self,
        member_id: int,
        amount,
        payment_date=None,
        comment: str | None = None,
        actor_id: int | None = None,
    ) -> Payment:
        """Record a payment from a member.

        Raises:
            ValidationError: If amount is not positive (never clamped) or date is in the future
            MemberNotFoundError: If the member does not exist
            StoreError: If the store rejects the write
        """
        value = self._positive_amount(amount, "Payment amount")
        day = resolve_entry_date(payment_date, self.today(), allow_future=self.allow_future_dated)
        await self.members.lookup(member_id)

        payment_id = await self.store.create(
            RecordKind.PAYMENT,
            {
                "member_id": member_id,
                "amount": value,
                "payment_date": day,
                "comment": comment.strip() if comment else None,
            },
            actor_id=actor_id,
        )
        logger.info("Recorded payment: member_id=%s, amount=%s, date=%s, id=%s", member_id, value, day, payment_id)
        return await self.store.get(RecordKind.PAYMENT, payment_id)

    async def get_statement(self, member_id: int, date_range: DateRange | None = None) -> MemberStatement:
        """Purchase history of a member: charges in range, newest first, with their total."""
        member = await self.members.lookup(member_id)
        charges = await self.store.query(RecordKind.CHARGE, member_id=member_id, date_range=date_range)
        total = sum((charge.total_cost for charge in charges), Decimal("0"))
        return MemberStatement(
            member=member,
            date_range=date_range,
            charges=newest_first(charges, "charge_date"),
            total=quantize_money(total),
        )

    @staticmethod
    def _positive_amount(value, label: str) -> Decimal:
        try:
            amount = parse_amount(value)
        except ValueError as e:
            logger.warning("%s rejected: %s", label, e)
            raise ValidationError(f"{label} must be a number up to {MAX_AMOUNT}, got {value!r}") from e
        if amount is None or amount <= 0:
            logger.warning("%s rejected: %r is not positive", label, value)
            raise ValidationError(f"{label} must be greater than zero")
        amount = quantize_money(amount)
        if amount <= 0:
            raise ValidationError(f"{label} must be at least 0.01")
        return amount


__all__ = [
    "LedgerService",
    "LedgerWatch",
    "MemberLedger",
    "MemberStatement",
    "build_member_ledger",
    "newest_first",
]
