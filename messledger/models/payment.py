"""Payment ORM model for member credits."""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from messledger.models import Base, BaseModel


class Payment(Base, BaseModel):
    """Model representing a payment made by a member.

    The ledger is balance-based: payments reduce the outstanding balance
    and are never linked to a specific charge.
    """

    __tablename__ = "payments"

    member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"),
        nullable=False,
        index=True,
        comment="Member who made the payment",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Payment amount",
    )
    payment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="Date of payment",
    )
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Optional payment comment (receipt number etc.)",
    )

    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="payments",
        foreign_keys=[member_id],
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("idx_payment_member_date", "member_id", "payment_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, member_id={self.member_id}, "
            f"amount={self.amount}, payment_date={self.payment_date})>"
        )


__all__ = ["Payment"]
