"""Bar inventory: the price list bar charges are priced from."""

import inspect
import logging
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, NamedTuple, Optional

from messledger.errors import StalePriceError, SubscriptionError, ValidationError
from messledger.models.inventory_item import InventoryItem
from messledger.services.parsers import parse_amount, quantize_money
from messledger.services.record_store import RecordKind, RecordStore, Subscription

logger = logging.getLogger(__name__)


class UnitType(str, Enum):
    """How a bar drink is sold."""

    SHOT = "shot"
    BOTTLE = "bottle"


class InventoryPrice(NamedTuple):
    """Current pricing for one brand."""

    brand_id: int
    brand: str
    unit_price_bottle: Decimal
    unit_price_shot: Decimal
    available: bool

    def unit_price(self, unit_type: UnitType) -> Decimal:
        if unit_type == UnitType.BOTTLE:
            return self.unit_price_bottle
        return self.unit_price_shot


def _to_price(item: InventoryItem) -> InventoryPrice:
    return InventoryPrice(
        brand_id=item.id,
        brand=item.brand,
        unit_price_bottle=item.price_bottle,
        unit_price_shot=item.price_shot,
        available=item.available,
    )


def _validated_price(value, label: str) -> Decimal:
    try:
        price = parse_amount(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {label}: {value!r}") from e
    if price is None or price < 0:
        raise ValidationError(f"{label.capitalize()} must be zero or more")
    return quantize_money(price)


def _by_brand(items: list[InventoryItem]) -> list[InventoryItem]:
    return sorted(items, key=lambda i: (i.brand.lower(), i.id))


PriceListCallback = Callable[[list[InventoryPrice]], Awaitable[None] | None]


class InventoryWatch:
    """Live price list, as shown on the bar page.

    Delivers the whole list ordered by brand on subscribe and after every
    inventory change. cancel() must be called exactly once.
    """

    def __init__(self, callback: PriceListCallback):
        self.callback = callback
        self.latest: list[InventoryPrice] | None = None
        self._subscription: Subscription | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    async def _on_items(self, records: list[InventoryItem]) -> None:
        if self._cancelled:
            return
        self.latest = [_to_price(item) for item in _by_brand(records)]
        result = self.callback(self.latest)
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        """Release the inventory subscription.

        Raises:
            SubscriptionError: If the watch was already cancelled
        """
        if self._cancelled:
            raise SubscriptionError("Inventory watch already cancelled")
        self._cancelled = True
        if self._subscription is not None and self._subscription.active:
            self._subscription.cancel()
        self._subscription = None


class InventoryService:
    """Service for the bar price list.

    Inventory is mutable (unlike charges); bar charges copy the price they
    were sold at, so later price changes never touch recorded charges.
    """

    def __init__(self, store: RecordStore):
        """Initialize with record store."""
        self.store = store

    async def lookup(self, brand_id: int) -> Optional[InventoryPrice]:
        """Current price and availability of a brand, or None if it does not exist."""
        item = await self.store.get(RecordKind.INVENTORY, brand_id)
        if item is None:
            return None
        return _to_price(item)

    async def require_available(self, brand_id: int) -> InventoryPrice:
        """Look up a brand that must be on sale right now.

        Raises:
            StalePriceError: If the brand was removed or marked unavailable
        """
        price = await self.lookup(brand_id)
        if price is None:
            logger.warning("Bar charge refused: inventory item %s no longer exists", brand_id)
            raise StalePriceError(f"Inventory item {brand_id} no longer exists")
        if not price.available:
            logger.warning("Bar charge refused: %s (id=%s) is unavailable", price.brand, brand_id)
            raise StalePriceError(f"{price.brand} is not available")
        return price

    async def list_items(self, available_only: bool = False) -> list[InventoryItem]:
        """Price list ordered by brand."""
        filters = {"available": True} if available_only else {}
        return _by_brand(await self.store.query(RecordKind.INVENTORY, **filters))

    async def watch_items(self, callback: PriceListCallback, available_only: bool = False) -> InventoryWatch:
        """Subscribe to the price list; the callback gets the full list on every change."""
        watch = InventoryWatch(callback)
        filters = {"available": True} if available_only else {}
        watch._subscription = await self.store.subscribe(RecordKind.INVENTORY, watch._on_items, **filters)
        return watch

    async def add_item(
        self,
        brand: str,
        price_bottle,
        price_shot,
        available: bool = True,
        actor_id: int | None = None,
    ) -> InventoryItem:
        """Add a brand to the price list.

        Raises:
            ValidationError: If brand is empty or a price is invalid
        """
        if not brand or not brand.strip():
            raise ValidationError("Brand is required")
        item_id = await self.store.create(
            RecordKind.INVENTORY,
            {
                "brand": brand.strip(),
                "price_bottle": _validated_price(price_bottle, "bottle price"),
                "price_shot": _validated_price(price_shot, "shot price"),
                "available": available,
            },
            actor_id=actor_id,
        )
        logger.info("Added inventory item %s (id=%s)", brand, item_id)
        return await self.store.get(RecordKind.INVENTORY, item_id)

    async def update_item(
        self,
        brand_id: int,
        price_bottle=None,
        price_shot=None,
        available: bool | None = None,
        actor_id: int | None = None,
    ) -> InventoryItem:
        """Change prices and/or availability of a brand.

        Raises:
            ValidationError: If the brand does not exist, nothing changes or a price is invalid
        """
        if await self.lookup(brand_id) is None:
            raise ValidationError(f"Inventory item {brand_id} not found")
        fields = {}
        if price_bottle is not None:
            fields["price_bottle"] = _validated_price(price_bottle, "bottle price")
        if price_shot is not None:
            fields["price_shot"] = _validated_price(price_shot, "shot price")
        if available is not None:
            fields["available"] = available
        if not fields:
            raise ValidationError("Nothing to update")
        return await self.store.update(RecordKind.INVENTORY, brand_id, fields, actor_id=actor_id)


__all__ = ["InventoryService", "InventoryPrice", "InventoryWatch", "UnitType"]
