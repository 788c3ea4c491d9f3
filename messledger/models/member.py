"""Member ORM model for mess members and operators."""

from enum import Enum

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from messledger.models import Base, BaseModel


class MemberRole(str, Enum):
    """Role of a person registered with the mess."""

    MEMBER = "member"
    """Billable member (appears in the billing rollup)"""

    OPERATOR = "operator"
    """Mess staff posting charges and payments"""


class Member(Base, BaseModel):
    """
    Person registered with the mess.

    Members are created by registration, outside the ledger engine.
    The ledger only reads them: rank and name for display, member_no for
    sorting and search, and role to decide who is billable.
    """

    __tablename__ = "members"

    member_no: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Service/member number (unique, sortable)",
    )
    rank: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="",
        comment="Display rank (e.g., 'Capt')",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name",
    )
    role: Mapped[MemberRole] = mapped_column(
        SQLEnum(MemberRole),
        nullable=False,
        default=MemberRole.MEMBER,
        comment="member (billable) or operator",
    )

    # Relationships
    charges: Mapped[list["Charge"]] = relationship(  # noqa: F821
        "Charge",
        back_populates="member",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="member",
    )

    __table_args__ = (
        Index("idx_member_role", "role"),
        Index("idx_member_no", "member_no"),
    )

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, member_no={self.member_no!r}, name={self.name!r}, role={self.role})>"


__all__ = ["Member", "MemberRole"]
