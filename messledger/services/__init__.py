"""Record store construction and dependency wiring."""

from typing import Optional

from messledger.config import get_settings
from messledger.services.record_store import RecordStore

# Process-wide store, created on first use from settings
_store: Optional[RecordStore] = None


def get_store() -> RecordStore:
    """Get or create the record store configured by DATABASE_URL."""
    global _store
    if _store is None:
        settings = get_settings()
        _store = RecordStore.from_url(
            settings.database_url,
            echo=settings.database_echo,
            max_batch_size=settings.max_batch_size,
        )
    return _store


def set_store(store: Optional[RecordStore]) -> None:
    """Replace the process-wide store (tests, CLI with a custom URL)."""
    global _store
    _store = store


async def close_store() -> None:
    """Close the process-wide store, if one was created."""
    global _store
    if _store is not None:
        await _store.close()
        _store = None


__all__ = [
    "get_store",
    "set_store",
    "close_store",
]
