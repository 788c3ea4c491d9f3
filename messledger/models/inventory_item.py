"""Inventory ORM model for the bar price list."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from messledger.models import Base, BaseModel


class InventoryItem(Base, BaseModel):
    """Bar brand with its current bottle and shot prices.

    Unlike charges and payments this record is mutable: prices and
    availability change over time. Bar charges copy the price at entry time.
    """

    __tablename__ = "inventory_items"

    brand: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Brand name shown on the price list",
    )
    price_bottle: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Price of a full bottle",
    )
    price_shot: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Price of a single shot",
    )
    available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether the brand can currently be sold",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryItem(id={self.id}, brand={self.brand!r}, bottle={self.price_bottle}, "
            f"shot={self.price_shot}, available={self.available})>"
        )


__all__ = ["InventoryItem"]
