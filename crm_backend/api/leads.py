"""
Leads API routes.
"""
import uuid
from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import get_session
from crm_backend.services.lead_service import LeadService
from crm_backend.services.conversion.coordinator import LeadConversionService
from crm_backend.schemas.lead import (
    LeadCreate, LeadUpdate, LeadResponse, LeadFilter, IntakeFormUpdate,
    IntakeFormResponse, LeadProductIn, LeadProductsSet, LeadProductResponse, LeadReassign,
    LeadSummary
)
from crm_backend.core.pagination import PaginatedResponse
from crm_backend.schemas.order import OrderResponse
from crm_backend.schemas.conversion import ConversionOptions, ConversionValidationResult
from crm_backend.schemas.common import MessageResponse
from crm_backend.api.deps import require_roles, ensure_can_act_on_lead
from crm_backend.models.lead import LeadStatus
from crm_backend.models.staff import Staff, StaffRole

router = APIRouter(prefix="/api/leads", tags=["leads"])

lead_staff = require_roles(StaffRole.ADMIN, StaffRole.AGENT)
admin_only = require_roles(StaffRole.ADMIN)


async def _load_lead_for(lead_id: uuid.UUID, staff: Staff, lead_service: LeadService):
    lead = await lead_service.get(lead_id)
    ensure_can_act_on_lead(staff, lead)
    return lead


@router.post("/", response_model=LeadResponse, status_code=201)
async def create_lead(
    lead_data: LeadCreate,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Create a new lead. Without an agent it is assigned round-robin."""
    if current_staff.role == StaffRole.AGENT:
        lead_data.assigned_agent_id = current_staff.id
    lead_service = LeadService(session)
    return await lead_service.create(lead_data, current_staff.id)


@router.get("/", response_model=PaginatedResponse[LeadSummary])
async def list_leads(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[LeadStatus] = None,
    country: Optional[str] = None,
    source: Optional[str] = None,
    assigned_agent_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """List leads with filtering and pagination. Agents only see their own."""
    if current_staff.role == StaffRole.AGENT:
        assigned_agent_id = current_staff.id

    filters = LeadFilter(
        status=status,
        country=country,
        source=source,
        assigned_agent_id=assigned_agent_id,
        search=search
    )

    lead_service = LeadService(session)
    return await lead_service.list(filters, page, limit)


@router.get("/stats")
async def get_lead_stats(
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Lead count per status."""
    agent_id = current_staff.id if current_staff.role == StaffRole.AGENT else None
    lead_service = LeadService(session)
    return await lead_service.get_pipeline_stats(agent_id)


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: uuid.UUID,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Get a lead by ID."""
    lead_service = LeadService(session)
    return await _load_lead_for(lead_id, current_staff, lead_service)


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: uuid.UUID,
    lead_data: LeadUpdate,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Update a lead."""
    lead_service = LeadService(session)
    await _load_lead_for(lead_id, current_staff, lead_service)
    return await lead_service.update(lead_id, lead_data, current_staff.id)


@router.put("/{lead_id}/intake-form", response_model=IntakeFormResponse)
async def upsert_intake_form(
    lead_id: uuid.UUID,
    form_data: IntakeFormUpdate,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Create or update the lead's intake form."""
    lead_service = LeadService(session)
    await _load_lead_for(lead_id, current_staff, lead_service)
    return await lead_service.upsert_intake_form(lead_id, form_data, current_staff.id)


@router.put("/{lead_id}/products", response_model=List[LeadProductResponse])
async def set_lead_products(
    lead_id: uuid.UUID,
    data: LeadProductsSet,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Replace all products on a lead."""
    lead_service = LeadService(session)
    await _load_lead_for(lead_id, current_staff, lead_service)
    return await lead_service.set_products(lead_id, data.products, current_staff.id)


@router.post("/{lead_id}/products", response_model=LeadProductResponse, status_code=201)
async def add_lead_product(
    lead_id: uuid.UUID,
    product: LeadProductIn,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Add a product to a lead, or update it if already there."""
    lead_service = LeadService(session)
    await _load_lead_for(lead_id, current_staff, lead_service)
    return await lead_service.add_product(lead_id, product, current_staff.id)


@router.delete("/{lead_id}/products/{product_code}", response_model=MessageResponse)
async def remove_lead_product(
    lead_id: uuid.UUID,
    product_code: str,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    lead_service = LeadService(session)
    await _load_lead_for(lead_id, current_staff, lead_service)
    await lead_service.remove_product(lead_id, product_code, current_staff.id)
    return MessageResponse(message=f"Product {product_code} removed")


@router.post("/{lead_id}/reassign", response_model=LeadResponse)
async def reassign_lead(
    lead_id: uuid.UUID,
    data: LeadReassign,
    current_staff: Staff = Depends(admin_only),
    session: AsyncSession = Depends(get_session)
):
    """Assign the lead to another agent."""
    lead_service = LeadService(session)
    return await lead_service.reassign(lead_id, data.agent_id, current_staff.id)


@router.get("/{lead_id}/validate-conversion", response_model=ConversionValidationResult)
async def validate_lead_conversion(
    lead_id: uuid.UUID,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Check whether the lead can be converted, without converting it."""
    await _load_lead_for(lead_id, current_staff, LeadService(session))
    conversion_service = LeadConversionService(session)
    return await conversion_service.validate_conversion(lead_id)


@router.post("/{lead_id}/convert", response_model=OrderResponse, status_code=201)
async def convert_lead(
    lead_id: uuid.UUID,
    options: Optional[ConversionOptions] = None,
    current_staff: Staff = Depends(lead_staff),
    session: AsyncSession = Depends(get_session)
):
    """Convert the lead into an order with a new EM number."""
    await _load_lead_for(lead_id, current_staff, LeadService(session))
    conversion_service = LeadConversionService(session)
    return await conversion_service.convert_lead(lead_id, options, current_staff.id)
