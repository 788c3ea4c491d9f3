"""Audit trail for ledger postings.

Audit rows are added to the session that writes the postings, so a rolled
back batch leaves no audit row behind either.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from messledger.models.audit_log import AuditLog


def snapshot(value: Any) -> Any:
    """Make posting values JSON-serialisable (Decimal and date become strings)."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: snapshot(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [snapshot(v) for v in value]
    return value


class AuditService:
    """Writes AuditLog rows into the caller's session."""

    @staticmethod
    def log(
        session: AsyncSession,
        entity_type: str,
        entity_id: int | None,
        action: str,
        actor_id: int | None = None,
        changes: dict | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=changes,
        )
        session.add(entry)
        return entry

    @classmethod
    def record_created(cls, session: AsyncSession, kind: str, record_id: int, fields: dict, actor_id=None) -> AuditLog:
        """Audit a single posting with a snapshot of what was written."""
        return cls.log(session, kind, record_id, "create", actor_id=actor_id, changes=snapshot(fields))

    @classmethod
    def batch_posted(
        cls,
        session: AsyncSession,
        action: str,
        records: list[tuple[str, int]],
        actor_id=None,
    ) -> AuditLog:
        """Audit a whole batch as one entry listing every (kind, id) it created."""
        return cls.log(
            session,
            "batch",
            None,
            action,
            actor_id=actor_id,
            changes={"count": len(records), "records": [[kind, record_id] for kind, record_id in records]},
        )

    @classmethod
    def record_updated(
        cls,
        session: AsyncSession,
        kind: str,
        record_id: int,
        before: dict,
        after: dict,
        actor_id=None,
    ) -> AuditLog:
        return cls.log(
            session,
            kind,
            record_id,
            "update",
            actor_id=actor_id,
            changes=snapshot({"before": before, "after": after}),
        )


__all__ = ["AuditService", "snapshot"]
