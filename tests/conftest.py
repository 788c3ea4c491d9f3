"""Pytest configuration and shared fixtures for ledger tests.

Every test gets its own in-memory SQLite database, created on the test's
event loop and disposed afterwards.
"""

from datetime import date
from decimal import Decimal

import pytest

from messledger.config import reset_settings
from messledger.models.charge import ChargeCategory
from messledger.models.member import MemberRole
from messledger.services import set_store
from messledger.services.inventory_service import InventoryService
from messledger.services.member_service import MemberService
from messledger.services.record_store import RecordKind, RecordStore

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep a developer's .env, environment and database out of the tests."""
    for name in (
        "DATABASE_URL",
        "DATABASE_ECHO",
        "LEDGER_MAX_BATCH_SIZE",
        "LEDGER_ALLOW_FUTURE_DATED_CHARGES",
        "LEDGER_CURRENCY",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    set_store(None)
    reset_settings()


@pytest.fixture
async def store():
    """Provide an empty record store with all tables created."""
    record_store = RecordStore.from_url(TEST_DATABASE_URL)
    await record_store.create_schema()
    yield record_store
    await record_store.close()


@pytest.fixture
def today() -> date:
    """Fixed "today" so future/back-dated checks do not depend on the wall clock."""
    return date(2025, 1, 15)


@pytest.fixture
def clock(today):
    return lambda: today


@pytest.fixture
async def members(store):
    """Three billable members and one operator.

    Returns:
        Dict of short name -> Member
    """
    service = MemberService(store)
    return {
        "perera": await service.register_member("O-1002", "A. Perera", rank="Capt"),
        "silva": await service.register_member("O-1001", "K. Silva", rank="Lt"),
        "fernando": await service.register_member("O-1003", "R. Fernando", rank="Maj"),
        "operator": await service.register_member("S-0001", "Mess Secretary", role=MemberRole.OPERATOR),
    }


@pytest.fixture
async def inventory(store):
    """Bar price list: one available brand, one unavailable."""
    service = InventoryService(store)
    return {
        "arrack": await service.add_item("Old Arrack", price_bottle="2400.00", price_shot="150.00"),
        "whisky": await service.add_item("Black Label", price_bottle="9800", price_shot="600", available=False),
    }


@pytest.fixture
def post_charge(store, today):
    """Append a single-item charge directly through the store."""

    async def _post(member_id, cost, charge_date=None, category=ChargeCategory.MESSING, label="Lunch"):
        cost = Decimal(cost)
        return await store.create(
            RecordKind.CHARGE,
            {
                "member_id": member_id,
                "charge_date": charge_date or today,
                "category": category,
                "items": [{"label": label, "unit_cost": cost, "quantity": 1}],
                "total_cost": cost,
            },
        )

    return _post


@pytest.fixture
def post_payment(store, today):
    """Append a payment directly through the store."""

    async def _post(member_id, amount, payment_date=None):
        return await store.create(
            RecordKind.PAYMENT,
            {"member_id": member_id, "amount": Decimal(amount), "payment_date": payment_date or today},
        )

    return _post
