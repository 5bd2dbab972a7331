"""
Staff and round-robin cursor repositories.
"""
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.models.staff import Staff, StaffRole
from crm_backend.models.assignment import AssignmentCursor
from crm_backend.repositories.base import BaseRepository


class StaffRepository(BaseRepository[Staff]):
    """Repository for Staff operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Staff, session)

    async def get_active_agents(self, country: Optional[str] = None) -> List[Staff]:
        """Active agents ordered by name, optionally in one country."""
        query = select(Staff).where(
            Staff.role == StaffRole.AGENT,
            Staff.active == True
        )
        if country:
            query = query.where(Staff.country == country)
        result = await self.session.exec(query.order_by(Staff.name, Staff.id))
        return result.all()

    async def get_first_active_admin(self) -> Optional[Staff]:
        query = select(Staff).where(
            Staff.role == StaffRole.ADMIN,
            Staff.active == True
        ).order_by(Staff.created_at)
        result = await self.session.exec(query)
        return result.first()


class AssignmentCursorRepository(BaseRepository[AssignmentCursor]):
    """Persisted round-robin positions, locked the same way as EM series rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(AssignmentCursor, session)

    async def lock(self, scope: str) -> AssignmentCursor:
        await self.insert_if_missing({"scope": scope, "last_index": -1}, conflict_columns=["scope"])
        query = (
            select(AssignmentCursor)
            .where(AssignmentCursor.scope == scope)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(query)
        return result.one()
