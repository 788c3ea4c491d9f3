"""Append-only record store with change notification.

The store is the only component that talks to the database. It exposes a
small document-style interface keyed by RecordKind:

- create(kind, fields) -> id
- batch_create([(kind, fields), ...]) -> ids, committed atomically or not at all
- query(kind, member_id=..., date_range=..., **equals) -> records
- subscribe(kind, callback, ...) -> Subscription delivering full snapshots
- update(kind, id, fields) for mutable kinds only

Charges and payments are append-only: update() refuses them and there is
no delete. Every successful commit notifies matching subscriptions, which
re-query the full record set so consumers never apply deltas.
"""

import inspect
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from sqlalchemy import event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from messledger.errors import ImmutableRecordError, StoreError, SubscriptionError, ValidationError
from messledger.models import Base
from messledger.models.charge import Charge, ChargeLineItem
from messledger.models.inventory_item import InventoryItem
from messledger.models.member import Member
from messledger.models.payment import Payment
from messledger.services.audit_service import AuditService
from messledger.services.date_range import DateRange

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    """Kinds of records held by the store."""

    MEMBER = "member"
    CHARGE = "charge"
    PAYMENT = "payment"
    INVENTORY = "inventory"


MODEL_BY_KIND = {
    RecordKind.MEMBER: Member,
    RecordKind.CHARGE: Charge,
    RecordKind.PAYMENT: Payment,
    RecordKind.INVENTORY: InventoryItem,
}

DATE_COLUMN_BY_KIND = {
    RecordKind.CHARGE: Charge.charge_date,
    RecordKind.PAYMENT: Payment.payment_date,
}

# Financial history: appended, never updated or deleted
APPEND_ONLY_KINDS = frozenset({RecordKind.CHARGE, RecordKind.PAYMENT})

SubscriptionCallback = Callable[[list], Awaitable[None] | None]


def _member_id_of(kind: RecordKind, record) -> int | None:
    if kind == RecordKind.MEMBER:
        return record.id
    return getattr(record, "member_id", None)


@dataclass
class Subscription:
    """Live query over one record kind.

    Created by RecordStore.subscribe(). The callback receives the complete
    current record set on subscribe and after every commit that touches the
    subscribed kind (and member, when member_id is set).

    Every subscription must be cancelled exactly once by its owner when the
    consumer goes away (view closed, member deselected).
    """

    store: "RecordStore"
    kind: RecordKind
    callback: SubscriptionCallback
    member_id: int | None = None
    date_range: DateRange | None = None
    filters: dict = field(default_factory=dict)
    active: bool = True
    deliveries: int = 0

    def matches(self, kind: RecordKind, member_ids: frozenset[int] | None) -> bool:
        if not self.active or kind != self.kind:
            return False
        if self.member_id is None or member_ids is None:
            return True
        return self.member_id in member_ids

    async def refresh(self) -> None:
        """Re-query the full record set and deliver it to the callback."""
        records = await self.store.query(
            self.kind,
            member_id=self.member_id,
            date_range=self.date_range,
            **self.filters,
        )
        if not self.active:
            # Cancelled while the query was in flight
            return
        self.deliveries += 1
        result = self.callback(records)
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        """Release the subscription.

        Raises:
            SubscriptionError: If the subscription was already cancelled
        """
        if not self.active:
            raise SubscriptionError(f"Subscription to {self.kind.value} already cancelled")
        self.active = False
        self.store._unregister(self)


class RecordStore:
    """Async record store over a SQLAlchemy session factory.

    Args:
        session_factory: async_sessionmaker bound to the ledger database
        max_batch_size: Largest batch accepted by batch_create()
        engine: Engine to dispose on close() (when the store owns it)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_batch_size: int = 500,
        engine: AsyncEngine | None = None,
    ):
        self.session_factory = session_factory
        self.max_batch_size = max_batch_size
        self.engine = engine
        self._subscriptions: list[Subscription] = []

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False, max_batch_size: int = 500) -> "RecordStore":
        """Create a store owning its own async engine.

        Args:
            database_url: SQLAlchemy async URL (e.g., "sqlite+aiosqlite:///./messledger.db")
            echo: Log SQL statements
            max_batch_size: Largest batch accepted by batch_create()
        """
        engine_kwargs: dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            from sqlalchemy.pool import StaticPool

            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        engine = create_async_engine(database_url, **engine_kwargs)

        if database_url.startswith("sqlite"):
            # SQLite ignores foreign keys unless asked per connection
            @event.listens_for(engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return cls(session_factory, max_batch_size=max_batch_size, engine=engine)

    async def create_schema(self) -> None:
        """Create all tables (development and tests; production uses Alembic)."""
        if self.engine is None:
            raise StoreError("Store has no engine to create the schema with")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Release leaked subscriptions and dispose the owned engine."""
        for subscription in list(self._subscriptions):
            logger.warning(
                "Releasing leaked subscription: kind=%s member_id=%s deliveries=%d",
                subscription.kind.value,
                subscription.member_id,
                subscription.deliveries,
            )
            subscription.cancel()
        if self.engine is not None:
            await self.engine.dispose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        kind: RecordKind,
        fields: dict,
        actor_id: int | None = None,
    ) -> int:
        """Append one record.

        Args:
            kind: Record kind
            fields: Column values; charges carry their line items under "items"
            actor_id: Operator recorded in the audit log

        Returns:
            ID of the created record

        Raises:
            ValidationError: If a charge is malformed
            StoreError: If the database rejects the write
        """
        ids = await self._commit([(kind, fields)], actor_id=actor_id, batch_action=None)
        return ids[0]

    async def batch_create(
        self,
        entries: list[tuple[RecordKind, dict]],
        actor_id: int | None = None,
        audit_action: str = "bulk_post",
    ) -> list[int]:
        """Append many records in one all-or-nothing transaction.

        Args:
            entries: (kind, fields) pairs
            actor_id: Operator recorded in the audit log
            audit_action: Action name for the batch audit entry

        Returns:
            IDs of created records, in entry order

        Raises:
            ValidationError: If any charge is malformed (nothing written)
            StoreError: If the batch exceeds max_batch_size or the commit fails (nothing written)
        """
        if not entries:
            return []
        if len(entries) > self.max_batch_size:
            logger.error(
                "Batch rejected: %d records exceeds limit of %d",
                len(entries),
                self.max_batch_size,
            )
            raise StoreError(
                f"Batch of {len(entries)} records exceeds the limit of {self.max_batch_size}"
            )
        return await self._commit(entries, actor_id=actor_id, batch_action=audit_action)

    async def update(self, kind: RecordKind, record_id: int, fields: dict, actor_id: int | None = None):
        """Update a mutable (non-financial) record.

        Raises:
            ImmutableRecordError: For charges and payments
            StoreError: If the record does not exist or the write fails
        """
        if kind in APPEND_ONLY_KINDS:
            logger.error("Refused update of %s %s: financial history is append-only", kind.value, record_id)
            raise ImmutableRecordError(f"{kind.value.capitalize()} records cannot be modified")

        model = MODEL_BY_KIND[kind]
        unknown = [name for name in fields if not hasattr(model, name)]
        if unknown:
            raise ValidationError(f"Unknown field(s) for {kind.value}: {', '.join(unknown)}")

        try:
            async with self.session_factory() as session:
                record = await session.get(model, record_id)
                if record is None:
                    raise StoreError(f"{kind.value} {record_id} not found")
                before = {name: getattr(record, name) for name in fields}
                for name, value in fields.items():
                    setattr(record, name, value)
                AuditService.record_updated(session, kind.value, record_id, before, fields, actor_id=actor_id)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Update of %s %s failed: %s", kind.value, record_id, e)
            raise StoreError(f"Could not update {kind.value} {record_id}") from e

        logger.info("Updated %s %s: %s", kind.value, record_id, sorted(fields))
        await self._publish(kind, frozenset({_member_id_of(kind, record)} - {None}) or None)
        return record

    async def _commit(
        self,
        entries: list[tuple[RecordKind, dict]],
        actor_id: int | None,
        batch_action: str | None,
    ) -> list[int]:
        records = [(kind, self._build_record(kind, dict(fields))) for kind, fields in entries]

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add_all([record for _, record in records])
                    await session.flush()

                    if batch_action is None:
                        kind, record = records[0]
                        if kind in APPEND_ONLY_KINDS or kind == RecordKind.INVENTORY:
                            AuditService.record_created(
                                session, kind.value, record.id, entries[0][1], actor_id=actor_id
                            )
                    else:
                        AuditService.batch_posted(
                            session,
                            batch_action,
                            [(kind.value, record.id) for kind, record in records],
                            actor_id=actor_id,
                        )
        except SQLAlchemyError as e:
            logger.error("Commit of %d record(s) rejected: %s", len(records), e)
            raise StoreError(f"Record store rejected the write of {len(records)} record(s)") from e

        logger.info(
            "Committed %d record(s): %s",
            len(records),
            ", ".join(f"{kind.value}#{record.id}" for kind, record in records),
        )

        touched: dict[RecordKind, set[int]] = {}
        for kind, record in records:
            member_id = _member_id_of(kind, record)
            touched.setdefault(kind, set())
            if member_id is not None:
                touched[kind].add(member_id)
        for kind, member_ids in touched.items():
            await self._publish(kind, frozenset(member_ids) or None)

        return [record.id for _, record in records]

    @staticmethod
    def _build_record(kind: RecordKind, fields: dict):
        """Instantiate the ORM object for a record, checking the charge is well formed."""
        if kind == RecordKind.CHARGE:
            items = fields.pop("items", None) or []
            if not items:
                raise ValidationError("A charge needs at least one line item")
            line_items = []
            for position, item in enumerate(items):
                quantity = int(item.get("quantity", 1))
                unit_cost = Decimal(item["unit_cost"])
                if quantity < 1:
                    raise ValidationError(f"Line item quantity must be at least 1, got {quantity}")
                if unit_cost < 0:
                    raise ValidationError(f"Line item cost cannot be negative, got {unit_cost}")
                line_items.append(
                    ChargeLineItem(
                        position=position,
                        label=item["label"],
                        unit_cost=unit_cost,
                        quantity=quantity,
                    )
                )
            total_cost = Decimal(fields.get("total_cost", 0))
            items_total = sum((item.cost for item in line_items), Decimal("0"))
            if total_cost < 0:
                raise ValidationError("Charge total cannot be negative")
            if total_cost != items_total:
                raise ValidationError(
                    f"Charge total {total_cost} does not match line items total {items_total}"
                )
            return Charge(items=line_items, **fields)

        if kind == RecordKind.PAYMENT:
            amount = Decimal(fields.get("amount", 0))
            if amount <= 0:
                raise ValidationError("Payment amount must be positive")

        return MODEL_BY_KIND[kind](**fields)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def query(
        self,
        kind: RecordKind,
        member_id: int | None = None,
        date_range: DateRange | None = None,
        **equals,
    ) -> list:
        """One-shot query in insertion order.

        Args:
            kind: Record kind
            member_id: Restrict to one member (charges, payments)
            date_range: Inclusive day range (charges, payments); None = all history
            **equals: Column equality filters (e.g., role=MemberRole.MEMBER)

        Raises:
            StoreError: If the database cannot be read
        """
        model = MODEL_BY_KIND[kind]
        stmt = select(model)
        if member_id is not None:
            if kind == RecordKind.MEMBER:
                stmt = stmt.where(Member.id == member_id)
            else:
                stmt = stmt.where(model.member_id == member_id)
        if date_range is not None and kind in DATE_COLUMN_BY_KIND:
            column = DATE_COLUMN_BY_KIND[kind]
            if date_range.start is not None:
                stmt = stmt.where(column >= date_range.start)
            if date_range.end is not None:
                stmt = stmt.where(column <= date_range.end)
        for name, value in equals.items():
            stmt = stmt.where(getattr(model, name) == value)
        stmt = stmt.order_by(model.id)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Query of %s failed: %s", kind.value, e)
            raise StoreError(f"Could not read {kind.value} records") from e

    async def get(self, kind: RecordKind, record_id: int):
        """Fetch one record by ID, or None."""
        try:
            async with self.session_factory() as session:
                return await session.get(MODEL_BY_KIND[kind], record_id)
        except SQLAlchemyError as e:
            logger.error("Get of %s %s failed: %s", kind.value, record_id, e)
            raise StoreError(f"Could not read {kind.value} {record_id}") from e

    async def count(self, kind: RecordKind) -> int:
        """Count records of one kind."""
        model = MODEL_BY_KIND[kind]
        async with self.session_factory() as session:
            result = await session.execute(select(func.count(model.id)))
            return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        kind: RecordKind,
        callback: SubscriptionCallback,
        member_id: int | None = None,
        date_range: DateRange | None = None,
        **equals,
    ) -> Subscription:
        """Start a live query; the current snapshot is delivered before returning.

        The caller owns the returned Subscription and must cancel() it.
        """
        subscription = Subscription(
            store=self,
            kind=kind,
            callback=callback,
            member_id=member_id,
            date_range=date_range,
            filters=equals,
        )
        self._subscriptions.append(subscription)
        logger.debug("Subscribed to %s (member_id=%s)", kind.value, member_id)
        try:
            await subscription.refresh()
        except Exception:
            subscription.cancel()
            raise
        return subscription

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    def _unregister(self, subscription: Subscription) -> None:
        self._subscriptions.remove(subscription)
        logger.debug("Unsubscribed from %s (member_id=%s)", subscription.kind.value, subscription.member_id)

    async def _publish(self, kind: RecordKind, member_ids: Iterable[int] | None) -> None:
        member_set = frozenset(member_ids) if member_ids is not None else None
        for subscription in list(self._subscriptions):
            if not subscription.matches(kind, member_set):
                continue
            try:
                await subscription.refresh()
            except Exception:
                # The write is committed; a failing consumer must not undo or mask it
                logger.exception(
                    "Subscriber to %s (member_id=%s) failed to process change",
                    kind.value,
                    subscription.member_id,
                )


__all__ = [
    "RecordKind",
    "RecordStore",
    "Subscription",
    "APPEND_ONLY_KINDS",
    "MODEL_BY_KIND",
]
