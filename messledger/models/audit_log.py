"""Audit trail of ledger postings."""

from typing import Any

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from messledger.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """One row per posting, batch or inventory edit.

    Batch rows have entity_type "batch", no entity_id, and list the
    created (kind, id) pairs in ``changes``.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(32))
    entity_id: Mapped[int | None] = mapped_column(nullable=True)
    action: Mapped[str] = mapped_column(String(32))
    # Operator who posted; None for CLI and system writes
    actor_id: Mapped[int | None] = mapped_column(ForeignKey("members.id"), nullable=True)
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, {self.action} {self.entity_type}#{self.entity_id}, actor={self.actor_id})>"


__all__ = ["AuditLog"]
