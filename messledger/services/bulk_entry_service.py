"""Daily ledger: post the same kind of charge to many members at once.

An operator builds a BulkEntryDraft (one row per member, plus shared
defaults), then submits it. Every valid selected row becomes one messing
Charge and all of them are committed in a single transaction: either every
charge lands or none does.

The draft is transient session state. It is never persisted and has no
relation to the database schema.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional

from messledger.errors import ValidationError
from messledger.models.charge import ChargeCategory
from messledger.services.date_range import resolve_entry_date
from messledger.services.member_service import MemberService
from messledger.services.parsers import parse_positive_amount, quantize_money
from messledger.services.record_store import RecordKind, RecordStore

logger = logging.getLogger(__name__)

SPECIAL_ITEM_PLACEHOLDER = "Special Item"


class MealType(str, Enum):
    """Item types offered on the daily ledger."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    TEA = "Tea"
    OTHER = "Other"
    SPECIAL = "Special"


FIXED_MEAL_TYPES = frozenset({MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER, MealType.TEA})


def build_item_name(item_type: MealType, note: Optional[str], default_description: Optional[str]) -> str:
    """Line item label for one bulk-posted charge.

    - Fixed meal with a note: "Lunch - Extra Chicken"
    - Fixed meal without a note: "Lunch"
    - Other/Special: the note, else the shared description, else "Special Item"
    """
    note = (note or "").strip()
    if item_type in FIXED_MEAL_TYPES:
        return f"{item_type.value} - {note}" if note else item_type.value
    return note or (default_description or "").strip() or SPECIAL_ITEM_PLACEHOLDER


@dataclass
class DraftRow:
    """Operator input for one member on the daily ledger; new rows start unselected."""

    selected: bool = False
    cost: str | None = ""
    note: str | None = ""

    def clear(self) -> None:
        self.selected = False
        self.cost = ""
        self.note = ""


@dataclass
class BulkEntryDraft:
    """In-memory daily ledger sheet for one operator session.

    Selecting a row seeds its cost and note from the shared defaults unless
    they were already filled in; editing a row selects it.
    """

    charge_date: date
    item_type: MealType = MealType.TEA
    description: str = ""
    unit_price: str = ""
    rows: dict[int, DraftRow] = field(default_factory=dict)

    @classmethod
    def for_members(cls, member_ids, charge_date: date, **defaults) -> "BulkEntryDraft":
        """Start a draft with one empty row per member."""
        return cls(charge_date=charge_date, rows={member_id: DraftRow() for member_id in member_ids}, **defaults)

    def _row(self, member_id: int) -> DraftRow:
        try:
            return self.rows[member_id]
        except KeyError:
            raise ValidationError(f"Member {member_id} is not on this ledger sheet") from None

    def _seed(self, row: DraftRow) -> None:
        if not row.cost:
            row.cost = self.unit_price
        if not row.note:
            row.note = self.description

    def toggle(self, member_id: int) -> DraftRow:
        """Flip selection of a row, seeding empty fields when selecting."""
        row = self._row(member_id)
        if not row.selected:
            self._seed(row)
        row.selected = not row.selected
        return row

    def update_row(self, member_id: int, field_name: str, value: str) -> DraftRow:
        """Edit cost or note of a row; the row becomes selected."""
        if field_name not in ("cost", "note"):
            raise ValidationError(f"Unknown draft field '{field_name}'")
        row = self._row(member_id)
        setattr(row, field_name, value)
        row.selected = True
        return row

    def select_all(self) -> None:
        """Select every row, or deselect all when every row is already selected."""
        all_selected = bool(self.rows) and all(row.selected for row in self.rows.values())
        for row in self.rows.values():
            row.selected = not all_selected
            if not all_selected:
                self._seed(row)

    def apply_defaults_to_selected(self) -> None:
        """Overwrite cost and note of every selected row with the shared defaults."""
        for row in self.rows.values():
            if row.selected:
                row.cost = self.unit_price
                row.note = self.description

    @property
    def selected_ids(self) -> list[int]:
        return [member_id for member_id, row in self.rows.items() if row.selected]


class BulkEntryResult(NamedTuple):
    """Outcome of a bulk submission."""

    posted_count: int
    posted: list[int]
    """Member IDs that received a charge"""
    skipped: list[int]
    """Selected member IDs left unposted because their cost was not a positive number"""
    charge_ids: list[int]


class BulkEntryService:
    """Build and atomically commit a batch of messing charges."""

    def __init__(
        self,
        store: RecordStore,
        allow_future_dated: bool = False,
        today: Callable[[], date] = date.today,
    ):
        """Initialize bulk entry service.

        Args:
            store: RecordStore to commit charges to
            allow_future_dated: Accept charge dates after today
            today: Clock used for the future-date check
        """
        self.store = store
        self.members = MemberService(store)
        self.allow_future_dated = allow_future_dated
        self.today = today

    def check_charge_date(self, charge_date) -> date:
        """Parse and vet a billing day.

        Back-dated charges are accepted (late entry is routine). Charges dated
        after today are refused unless allow_future_dated is set.

        Raises:
            ValidationError: If the date is missing, malformed or in the future
        """
        if charge_date is None or charge_date == "":
            raise ValidationError("Charge date is required")
        return resolve_entry_date(charge_date, self.today(), allow_future=self.allow_future_dated)

    async def submit_bulk_charges(
        self,
        charge_date,
        item_type: MealType,
        default_description: str,
        default_unit_price: str,
        rows: Mapping[int, DraftRow],
        actor_id: int | None = None,
    ) -> BulkEntryResult:
        """Post one messing charge per valid selected row in a single transaction.

        Selected rows whose cost is not a positive number are skipped and
        reported, not treated as errors. A row whose cost or note is None
        (never filled in) takes the shared default, as selection would.

        On success the posted rows are cleared in place; skipped and
        unselected rows are left as they were. On any failure nothing is
        written and no row is touched.

        Args:
            charge_date: Billing day (date or YYYY-MM-DD)
            item_type: Meal type for the whole batch
            default_description: Shared description
            default_unit_price: Shared price
            rows: member_id -> DraftRow
            actor_id: Operator posting the batch

        Returns:
            BulkEntryResult with posted and skipped member IDs

        Raises:
            ValidationError: Empty selection, bad/future date, unknown member
            StoreError: The store rejected the batch (nothing was written)
        """
        try:
            item_type = MealType(item_type)
        except ValueError as e:
            raise ValidationError(f"Unknown item type {item_type!r}") from e
        day = self.check_charge_date(charge_date)

        selected = [member_id for member_id, row in rows.items() if row.selected]
        if not selected:
            logger.warning("Bulk entry rejected: no members selected")
            raise ValidationError("Select at least one member")

        await self.members.require_members(selected)

        entries: list[tuple[RecordKind, dict]] = []
        posted: list[int] = []
        skipped: list[int] = []
        for member_id in selected:
            row = rows[member_id]
            raw_cost = default_unit_price if row.cost is None else row.cost
            note = default_description if row.note is None else row.note

            cost = parse_positive_amount(raw_cost)
            if cost is not None:
                cost = quantize_money(cost)
            if cost is None or cost <= 0:
                skipped.append(member_id)
                continue

            entries.append(
                (
                    RecordKind.CHARGE,
                    {
                        "member_id": member_id,
                        "charge_date": day,
                        "category": ChargeCategory.MESSING,
                        "items": [
                            {
                                "label": build_item_name(item_type, note, default_description),
                                "unit_cost": cost,
                                "quantity": 1,
                            }
                        ],
                        "total_cost": cost,
                        "is_bulk_entry": True,
                    },
                )
            )
            posted.append(member_id)

        if skipped:
            logger.info("Bulk entry %s: skipping %d row(s) without a positive cost: %s", day, len(skipped), skipped)

        if not entries:
            logger.warning("Bulk entry %s: selected rows have no positive cost, nothing posted", day)
            return BulkEntryResult(posted_count=0, posted=[], skipped=skipped, charge_ids=[])

        charge_ids = await self.store.batch_create(entries, actor_id=actor_id, audit_action="bulk_post")

        for member_id in posted:
            row = rows[member_id]
            if isinstance(row, DraftRow):
                row.clear()

        total = sum((fields["total_cost"] for _, fields in entries), Decimal("0"))
        logger.info(
            "Bulk entry %s (%s): posted %d charge(s) totalling %s",
            day,
            item_type.value,
            len(posted),
            total,
        )
        return BulkEntryResult(posted_count=len(posted), posted=posted, skipped=skipped, charge_ids=charge_ids)

    async def submit_draft(self, draft: BulkEntryDraft, actor_id: int | None = None) -> BulkEntryResult:
        """Submit a whole draft; posted rows are cleared on success."""
        return await self.submit_bulk_charges(
            charge_date=draft.charge_date,
            item_type=draft.item_type,
            default_description=draft.description,
            default_unit_price=draft.unit_price,
            rows=draft.rows,
            actor_id=actor_id,
        )


__all__ = [
    "BulkEntryDraft",
    "BulkEntryResult",
    "BulkEntryService",
    "DraftRow",
    "MealType",
    "build_item_name",
]
