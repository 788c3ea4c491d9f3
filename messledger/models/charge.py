"""Charge ORM models: one debit against a member and its line items."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from messledger.models import Base, BaseModel


class ChargeCategory(str, Enum):
    """Ledger category a charge is totalled under."""

    MESSING = "messing"
    """Meals and other mess services"""

    BAR = "bar"
    """Bar consumption"""


class Charge(Base, BaseModel):
    """
    Immutable debit record against one member.

    total_cost is stored at write time and is the authoritative amount.
    It is never recomputed from line items on read, because inventory prices
    may have changed since the charge was recorded. Corrections are new
    charges or payments, never edits.
    """

    __tablename__ = "charges"

    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"),
        nullable=False,
        index=True,
        comment="Member being charged",
    )
    charge_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="Billing day (calendar date, not a timestamp)",
    )
    category: Mapped[ChargeCategory] = mapped_column(
        SQLEnum(ChargeCategory),
        nullable=False,
        comment="messing or bar",
    )
    total_cost: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Sum of line item costs at write time",
    )
    is_bulk_entry: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Posted through the daily bulk ledger",
    )

    # Relationships
    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="charges",
        foreign_keys=[member_id],
    )
    items: Mapped[list["ChargeLineItem"]] = relationship(
        "ChargeLineItem",
        back_populates="charge",
        order_by="ChargeLineItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_cost >= 0", name="ck_charge_total_cost_non_negative"),
        Index("idx_charge_member_date", "member_id", "charge_date"),
        Index("idx_charge_category", "category"),
    )

    @property
    def description(self) -> str:
        """Human readable summary of the line items."""
        return "; ".join(item.display_label for item in self.items)

    def __repr__(self) -> str:
        return (
            f"<Charge(id={self.id}, member_id={self.member_id}, date={self.charge_date}, "
            f"category={self.category}, total_cost={self.total_cost})>"
        )


class ChargeLineItem(Base):
    """One priced line on a charge, kept in entry order."""

    __tablename__ = "charge_line_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    charge_id: Mapped[int] = mapped_column(
        ForeignKey("charges.id"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    charge: Mapped["Charge"] = relationship("Charge", back_populates="items")

    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_line_item_quantity_positive"),)

    @property
    def cost(self) -> Decimal:
        return self.unit_cost * self.quantity

    @property
    def display_label(self) -> str:
        if self.quantity > 1:
            return f"{self.label} (x{self.quantity})"
        return self.label

    def __repr__(self) -> str:
        return f"<ChargeLineItem(label={self.label!r}, unit_cost={self.unit_cost}, quantity={self.quantity})>"


__all__ = ["Charge", "ChargeCategory", "ChargeLineItem"]
