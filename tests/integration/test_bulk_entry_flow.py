"""Integration tests for the daily ledger bulk submission."""

from datetime import date
from decimal import Decimal

import pytest

from messledger.errors import StoreError, ValidationError
from messledger.models.charge import ChargeCategory
from messledger.services.bulk_entry_service import BulkEntryDraft, BulkEntryService, DraftRow, MealType
from messledger.services.member_service import MemberService
from messledger.services.record_store import RecordKind

pytestmark = pytest.mark.integration


@pytest.fixture
def service(store, clock):
    return BulkEntryService(store, today=clock)


@pytest.fixture
async def roster(store, members):
    """Five extra members so a sheet can hold mixed valid and invalid rows."""
    directory = MemberService(store)
    extra = [await directory.register_member(f"O-20{i:02d}", f"Member {i}") for i in range(5)]
    return [m.id for m in extra]


class TestSubmitBulkCharges:
    async def test_mixed_costs_post_only_positive_rows(self, service, store, roster, today):
        """Costs [100, 0, abc, 50, -10]: two charges, three rows skipped and left selected."""
        rows = {
            member_id: DraftRow(selected=True, cost=cost, note="")
            for member_id, cost in zip(roster, ["100", "0", "abc", "50", "-10"])
        }

        result = await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert result.posted_count == 2
        assert result.posted == [roster[0], roster[3]]
        assert result.skipped == [roster[1], roster[2], roster[4]]
        charges = await store.query(RecordKind.CHARGE)
        assert sorted(c.total_cost for c in charges) == [Decimal("50.00"), Decimal("100.00")]
        assert all(c.is_bulk_entry and c.category == ChargeCategory.MESSING for c in charges)
        assert rows[roster[0]] == DraftRow()
        assert rows[roster[2]].selected and rows[roster[2]].cost == "abc"

    async def test_out_of_range_cost_is_skipped(self, service, store, members, today):
        silva, perera = members["silva"].id, members["perera"].id
        rows = {
            silva: DraftRow(selected=True, cost="100"),
            perera: DraftRow(selected=True, cost="1e30"),
        }

        result = await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert result.posted == [silva]
        assert result.skipped == [perera]
        assert [c.total_cost for c in await store.query(RecordKind.CHARGE)] == [Decimal("100.00")]
        assert rows[perera].cost == "1e30"

    async def test_item_names(self, service, store, members, today):
        silva, perera = members["silva"].id, members["perera"].id
        rows = {
            silva: DraftRow(selected=True, cost="450", note="Extra Chicken"),
            perera: DraftRow(selected=True, cost="400", note=""),
        }

        await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        labels = {c.member_id: c.items[0].label for c in await store.query(RecordKind.CHARGE)}
        assert labels == {silva: "Lunch - Extra Chicken", perera: "Lunch"}

    async def test_special_item_uses_shared_description(self, service, store, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="1200", note="")}

        await service.submit_bulk_charges(today, MealType.OTHER, "Guest night", "1200", rows)

        charge = (await store.query(RecordKind.CHARGE))[0]
        assert charge.description == "Guest night"

    async def test_unfilled_row_takes_defaults(self, service, store, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost=None, note=None)}

        result = await service.submit_bulk_charges(today, MealType.TEA, "", "75", rows)

        assert result.posted_count == 1
        assert (await store.query(RecordKind.CHARGE))[0].total_cost == Decimal("75.00")

    async def test_unselected_rows_are_ignored(self, service, store, members, today):
        rows = {
            members["silva"].id: DraftRow(selected=True, cost="100"),
            members["perera"].id: DraftRow(selected=False, cost="200"),
        }

        result = await service.submit_bulk_charges(today, MealType.DINNER, "", "", rows)

        assert result.posted == [members["silva"].id]
        assert rows[members["perera"].id].cost == "200"

    async def test_nothing_selected(self, service, store, members, today):
        rows = {members["silva"].id: DraftRow(selected=False, cost="100")}

        with pytest.raises(ValidationError, match="Select at least one member"):
            await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

    async def test_no_valid_cost_posts_nothing(self, service, store, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="0")}

        result = await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert result.posted_count == 0
        assert result.skipped == [members["silva"].id]
        assert await store.count(RecordKind.CHARGE) == 0
        assert rows[members["silva"].id].selected

    async def test_unknown_member(self, service, store, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="10"), 9999: DraftRow(selected=True, cost="10")}

        with pytest.raises(ValidationError, match="Unknown member"):
            await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert await store.count(RecordKind.CHARGE) == 0

    async def test_unknown_item_type(self, service, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="10")}

        with pytest.raises(ValidationError, match="Unknown item type"):
            await service.submit_bulk_charges(today, "Brunch", "", "", rows)

    async def test_cost_rounded_to_zero_is_skipped(self, service, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="0.004")}

        result = await service.submit_bulk_charges(today, MealType.TEA, "", "", rows)

        assert result.skipped == [members["silva"].id]


class TestAtomicity:
    async def test_store_failure_writes_nothing_and_keeps_draft(self, service, store, members, today):
        store.max_batch_size = 1
        rows = {
            members["silva"].id: DraftRow(selected=True, cost="100", note="a"),
            members["perera"].id: DraftRow(selected=True, cost="200", note="b"),
        }
        before = {k: DraftRow(v.selected, v.cost, v.note) for k, v in rows.items()}

        with pytest.raises(StoreError):
            await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert await store.count(RecordKind.CHARGE) == 0
        assert rows == before

    async def test_commit_failure_mid_transaction(self, service, store, members, today, monkeypatch):
        """A database error raised after the first insert still leaves nothing behind."""
        from messledger.services import record_store as record_store_module

        original = record_store_module.AuditService.log

        def failing_log(*args, **kwargs):
            original(*args, **kwargs)
            raise record_store_module.SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(record_store_module.AuditService, "log", staticmethod(failing_log))
        rows = {members["silva"].id: DraftRow(selected=True, cost="100")}

        with pytest.raises(StoreError):
            await service.submit_bulk_charges(today, MealType.LUNCH, "", "", rows)

        assert await store.count(RecordKind.CHARGE) == 0
        assert rows[members["silva"].id].selected


class TestChargeDate:
    async def test_future_date_rejected(self, service, members, today):
        rows = {members["silva"].id: DraftRow(selected=True, cost="100")}

        with pytest.raises(ValidationError, match="in the future"):
            await service.submit_bulk_charges(date(2025, 1, 16), MealType.LUNCH, "", "", rows)

    async def test_future_date_allowed_when_configured(self, store, members, clock):
        service = BulkEntryService(store, allow_future_dated=True, today=clock)
        rows = {members["silva"].id: DraftRow(selected=True, cost="100")}

        result = await service.submit_bulk_charges("2025-01-20", MealType.LUNCH, "", "", rows)

        assert result.posted_count == 1

    async def test_back_dated_accepted(self, service, store, members):
        rows = {members["silva"].id: DraftRow(selected=True, cost="100")}

        await service.submit_bulk_charges("2024-12-31", MealType.LUNCH, "", "", rows)

        assert (await store.query(RecordKind.CHARGE))[0].charge_date == date(2024, 12, 31)

    async def test_date_required(self, service, members):
        rows = {members["silva"].id: DraftRow(selected=True, cost="100")}

        with pytest.raises(ValidationError, match="required"):
            await service.submit_bulk_charges(None, MealType.LUNCH, "", "", rows)


class TestSubmitDraft:
    async def test_draft_round(self, service, store, members, today):
        ids = [members["silva"].id, members["perera"].id, members["fernando"].id]
        draft = BulkEntryDraft.for_members(ids, today, item_type=MealType.BREAKFAST, unit_price="250")
        draft.select_all()
        draft.update_row(ids[2], "cost", "")

        result = await service.submit_draft(draft, actor_id=members["operator"].id)

        assert result.posted == ids[:2]
        assert result.skipped == [ids[2]]
        assert draft.selected_ids == [ids[2]]
