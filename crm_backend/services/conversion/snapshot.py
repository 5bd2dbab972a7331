"""
Lead snapshot reader.
"""
import uuid

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.core.exceptions import NotFoundError
from crm_backend.repositories.lead_repo import LeadRepository
from crm_backend.schemas.conversion import LeadSnapshot


class LeadSnapshotReader:
    """Loads everything conversion needs to know about a lead, without side effects."""

    def __init__(self, session: AsyncSession):
        self.lead_repo = LeadRepository(session)

    async def load(self, lead_id: uuid.UUID) -> LeadSnapshot:
        lead = await self.lead_repo.get_with_relations(lead_id)
        if not lead:
            raise NotFoundError("Lead", str(lead_id))
        return LeadSnapshot.model_validate(lead)
