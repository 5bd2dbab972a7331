"""
Settings API routes - EM series management (admin only).
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import get_session
from crm_backend.services.em_series_service import EmSeriesService
from crm_backend.schemas.em_series import EmSeriesCreate, EmSeriesUpdate, EmSeriesResponse
from crm_backend.schemas.common import MessageResponse
from crm_backend.api.deps import require_roles
from crm_backend.models.staff import Staff, StaffRole

router = APIRouter(prefix="/api/settings", tags=["settings"])

admin_only = require_roles(StaffRole.ADMIN)


@router.get("/em-series", response_model=List[EmSeriesResponse])
async def list_em_series(
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    return await EmSeriesService(session).list()


@router.post("/em-series", response_model=EmSeriesResponse, status_code=201)
async def create_em_series(
    data: EmSeriesCreate,
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    """Create the EM number series for a country."""
    return await EmSeriesService(session).create(data, current_staff.id)


@router.get("/em-series/{country}", response_model=EmSeriesResponse)
async def get_em_series(
    country: str,
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    return await EmSeriesService(session).get(country)


@router.patch("/em-series/{country}", response_model=EmSeriesResponse)
async def update_em_series(
    country: str,
    data: EmSeriesUpdate,
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    """Change prefix, move the counter forward, or switch the series on or off."""
    return await EmSeriesService(session).update(country, data, current_staff.id)


@router.delete("/em-series/{country}", response_model=MessageResponse)
async def delete_em_series(
    country: str,
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    await EmSeriesService(session).delete(country, current_staff.id)
    return MessageResponse(message=f"EM series for {country} deleted")
