"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with identity and server-assigned creation time.

    Financial records are append-only, so there is no updated_at here;
    mutable models declare their own.
    """

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from messledger.models.audit_log import AuditLog  # noqa: E402
from messledger.models.charge import Charge, ChargeCategory, ChargeLineItem  # noqa: E402
from messledger.models.inventory_item import InventoryItem  # noqa: E402
from messledger.models.member import Member, MemberRole  # noqa: E402
from messledger.models.payment import Payment  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "Charge",
    "ChargeCategory",
    "ChargeLineItem",
    "InventoryItem",
    "Member",
    "MemberRole",
    "Payment",
]
