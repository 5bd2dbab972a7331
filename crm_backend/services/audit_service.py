"""
Audit service - append-only change trail.
"""
import uuid
import logging
from typing import Any, Optional, List

from fastapi.encoders import jsonable_encoder
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.repositories.audit_repo import AuditLogRepository
from crm_backend.models.audit import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Service for audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_repo = AuditLogRepository(session)

    async def log(
        self,
        entity_type: str,
        entity_id: Any,
        action: str,
        actor_user_id: Optional[uuid.UUID] = None,
        before: Any = None,
        after: Any = None
    ) -> Optional[AuditLog]:
        """
        Write an audit entry in its own commit.

        Fire-and-forget: a failed write is logged and dropped, never raised,
        so it cannot undo or fail the change being audited.
        """
        try:
            return await self.audit_repo.log(
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=action,
                actor_user_id=actor_user_id,
                before=jsonable_encoder(before) if before is not None else None,
                after=jsonable_encoder(after) if after is not None else None
            )
        except Exception as e:
            logger.error(f"Failed to create audit log for {entity_type} {entity_id} ({action}): {e}")
            await self.session.rollback()
            return None

    async def get_recent(self, limit: int = 100) -> List[AuditLog]:
        return await self.audit_repo.get_recent(limit)

    async def get_by_entity(self, entity_type: str, entity_id: Any, limit: int = 100) -> List[AuditLog]:
        """Get audit entries for a specific entity."""
        return await self.audit_repo.get_by_entity(entity_type, str(entity_id), limit)
