"""FastAPI dependencies shared by the ledger routers."""

from fastapi import Depends, Header

from messledger.config import get_settings
from messledger.services import get_store
from messledger.services.balance_service import BalanceCalculationService
from messledger.services.bulk_entry_service import BulkEntryService
from messledger.services.inventory_service import InventoryService
from messledger.services.ledger_service import LedgerService
from messledger.services.record_store import RecordStore
from messledger.services.rollup_service import RollupService


def record_store() -> RecordStore:
    return get_store()


def operator_id(x_operator_id: int | None = Header(default=None)) -> int | None:
    """Operator recorded in the audit log (X-Operator-Id header)."""
    return x_operator_id


def ledger_service(store: RecordStore = Depends(record_store)) -> LedgerService:
    return LedgerService(store, allow_future_dated=get_settings().allow_future_dated_charges)


def balance_service(store: RecordStore = Depends(record_store)) -> BalanceCalculationService:
    return BalanceCalculationService(store)


def bulk_entry_service(store: RecordStore = Depends(record_store)) -> BulkEntryService:
    return BulkEntryService(store, allow_future_dated=get_settings().allow_future_dated_charges)


def rollup_service(store: RecordStore = Depends(record_store)) -> RollupService:
    return RollupService(store)


def inventory_service(store: RecordStore = Depends(record_store)) -> InventoryService:
    return InventoryService(store)
