"""Member directory: read-only lookups of registered members."""

import logging
from typing import NamedTuple, Optional

from messledger.errors import MemberNotFoundError, ValidationError
from messledger.models.member import Member, MemberRole
from messledger.services.record_store import RecordKind, RecordStore

logger = logging.getLogger(__name__)


class MemberInfo(NamedTuple):
    """Directory entry as seen by the ledger."""

    member_id: int
    member_no: str
    rank: str
    name: str


class MemberService:
    """Service for member directory operations.

    The ledger never writes to the directory; register_member() exists for
    seeding and tests, where registration would otherwise happen elsewhere.
    """

    def __init__(self, store: RecordStore):
        """Initialize with record store."""
        self.store = store

    async def list_members(self) -> list[Member]:
        """List billable members (role=member) ordered by member number."""
        members = await self.store.query(RecordKind.MEMBER, role=MemberRole.MEMBER)
        return sorted(members, key=lambda m: (m.member_no, m.id))

    async def get_member(self, member_id: int) -> Optional[Member]:
        """
        Get member by ID.

        Args:
            member_id: Member ID

        Returns:
            Member if found, None otherwise
        """
        return await self.store.get(RecordKind.MEMBER, member_id)

    async def lookup(self, member_id: int) -> MemberInfo:
        """
        Look up the display fields of a member.

        Raises:
            MemberNotFoundError: If no such member exists
        """
        member = await self.get_member(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return MemberInfo(
            member_id=member.id,
            member_no=member.member_no,
            rank=member.rank,
            name=member.name,
        )

    async def require_members(self, member_ids) -> dict[int, Member]:
        """Resolve a set of member IDs, failing on any unknown ID.

        Raises:
            ValidationError: If any ID does not belong to a registered member
        """
        wanted = set(member_ids)
        members = {m.id: m for m in await self.store.query(RecordKind.MEMBER) if m.id in wanted}
        missing = sorted(wanted - set(members))
        if missing:
            raise ValidationError(f"Unknown member(s): {', '.join(str(m) for m in missing)}")
        return members

    async def register_member(
        self,
        member_no: str,
        name: str,
        rank: str = "",
        role: MemberRole = MemberRole.MEMBER,
    ) -> Member:
        """Register a member (seeding/tests only).

        Raises:
            ValidationError: If member_no or name is empty
        """
        if not member_no or not member_no.strip():
            raise ValidationError("Member number is required")
        if not name or not name.strip():
            raise ValidationError("Member name is required")

        member_id = await self.store.create(
            RecordKind.MEMBER,
            {"member_no": member_no.strip(), "name": name.strip(), "rank": rank.strip(), "role": role},
        )
        logger.info("Registered member %s (id=%s, role=%s)", member_no, member_id, role.value)
        return await self.get_member(member_id)


__all__ = ["MemberService", "MemberInfo"]
