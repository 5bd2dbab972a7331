"""
API dependencies - shared across all routes.
"""
import uuid

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import get_session
from crm_backend.config import settings
from crm_backend.core.security import verify_token
from crm_backend.core.exceptions import raise_unauthorized, raise_forbidden
from crm_backend.models.lead import Lead
from crm_backend.models.staff import Staff, StaffRole
from crm_backend.repositories.staff_repo import StaffRepository


oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


async def get_current_staff(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session)
) -> Staff:
    """Get current authenticated staff member from JWT token."""
    payload = verify_token(token, "access")
    if not payload:
        raise_unauthorized("Could not validate credentials")

    staff_id = payload.get("staff_id")
    if not staff_id:
        raise_unauthorized("Could not validate credentials")

    try:
        staff_uuid = uuid.UUID(staff_id)
    except ValueError:
        raise_unauthorized("Could not validate credentials")

    staff = await StaffRepository(session).get(staff_uuid)

    if not staff:
        raise_unauthorized("Staff member not found")

    if not staff.active:
        raise_unauthorized("Staff account is deactivated")

    return staff


def require_roles(*roles: StaffRole):
    """Dependency factory: current staff must have one of the roles."""
    async def checker(current_staff: Staff = Depends(get_current_staff)) -> Staff:
        if current_staff.role not in roles:
            raise_forbidden()
        return current_staff
    return checker


def ensure_can_act_on_lead(staff: Staff, lead: Lead) -> None:
    """Admins act on any lead; agents only on leads assigned to them."""
    if staff.role == StaffRole.ADMIN:
        return
    if staff.role == StaffRole.AGENT and lead.assigned_agent_id == staff.id:
        return
    raise_forbidden("You can only work on leads assigned to you")
