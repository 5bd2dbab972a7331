"""
Lead assignment - round-robin over active agents.

The round-robin position lives in the database (one AssignmentCursor row per
scope), locked while it is advanced, so several API instances share one rotation.
"""
import uuid
import logging
from datetime import datetime
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import serializable_transaction
from crm_backend.models.staff import Staff
from crm_backend.repositories.staff_repo import StaffRepository, AssignmentCursorRepository

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"


class LeadAssignmentService:
    """Picks the agent for a new lead."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.staff_repo = StaffRepository(session)
        self.cursor_repo = AssignmentCursorRepository(session)

    async def next_agent(self, country: Optional[str] = None) -> Optional[uuid.UUID]:
        """
        Priority: agents in the lead's country, then any active agent,
        then the first active admin. None when nobody is available.
        """
        agents = await self.staff_repo.get_active_agents(country)
        if agents:
            agent = await self._rotate(country or GLOBAL_SCOPE, agents)
            logger.info(f"Assigning to agent {agent.name} for country {country or 'any'}")
            return agent.id

        if country:
            agents = await self.staff_repo.get_active_agents()
            if agents:
                agent = await self._rotate(GLOBAL_SCOPE, agents)
                logger.info(f"No agents for country {country}, fallback to global agent {agent.name}")
                return agent.id

        admin = await self.staff_repo.get_first_active_admin()
        if admin:
            logger.warning(f"No agents available, falling back to admin {admin.name}")
            return admin.id

        logger.error("No agents or admins available for assignment!")
        return None

    async def _rotate(self, scope: str, agents: List[Staff]) -> Staff:
        async with serializable_transaction(self.session):
            cursor = await self.cursor_repo.lock(scope)
            next_index = (cursor.last_index + 1) % len(agents)
            cursor.last_index = next_index
            cursor.updated_at = datetime.utcnow()
            self.session.add(cursor)
        return agents[next_index]
