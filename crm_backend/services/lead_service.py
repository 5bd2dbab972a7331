"""
Lead service - lead intake and management up to conversion.
"""
import uuid
import logging
from typing import Optional, List
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.core.exceptions import NotFoundError, ValidationError
from crm_backend.core.phone import normalize_phone_key, is_valid_phone, country_from_phone
from crm_backend.repositories.lead_repo import LeadRepository
from crm_backend.repositories.staff_repo import StaffRepository
from crm_backend.repositories.base import BaseRepository
from crm_backend.services.assignment_service import LeadAssignmentService
from crm_backend.services.audit_service import AuditService
from crm_backend.models.audit import Actions
from crm_backend.models.lead import (
    Lead, LeadProduct, LeadIntakeForm, LeadStatus, TERMINAL_LEAD_STATUSES
)
from crm_backend.models.product import Product
from crm_backend.models.staff import StaffRole
from crm_backend.schemas.lead import (
    LeadCreate, LeadUpdate, LeadFilter, IntakeFormUpdate, LeadProductIn
)

logger = logging.getLogger(__name__)


class LeadService:
    """Service for lead operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.lead_repo = LeadRepository(session)
        self.staff_repo = StaffRepository(session)
        self.product_repo = BaseRepository(Product, session)
        self.assignment = LeadAssignmentService(session)
        self.audit = AuditService(session)

    async def create(
        self,
        lead_data: LeadCreate,
        actor_id: Optional[uuid.UUID] = None
    ) -> Lead:
        """Create a new lead. Unassigned leads go to the next agent in rotation."""
        data = lead_data.model_dump(exclude={"phone"})
        data["phone_key"] = normalize_phone_key(lead_data.phone) or None
        data["status"] = LeadStatus.NEW

        if data["phone_key"]:
            if not is_valid_phone(data["phone_key"]):
                logger.warning(f"Creating lead with unrecognised phone number {data['phone_key']}")
            elif not data["country"]:
                data["country"] = country_from_phone(data["phone_key"])

        if not data["assigned_agent_id"]:
            data["assigned_agent_id"] = await self.assignment.next_agent(data["country"])

        lead = await self.lead_repo.create(data)
        lead = await self.get(lead.id)

        await self.audit.log("lead", lead.id, Actions.CREATE, actor_id, after=lead)
        return lead

    async def get(self, lead_id: uuid.UUID) -> Lead:
        """Get a lead with products, intake form and agent."""
        lead = await self.lead_repo.get_with_relations(lead_id)
        if not lead:
            raise NotFoundError("Lead", str(lead_id))
        return lead

    async def list(
        self,
        filters: Optional[LeadFilter] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """List leads with filtering and pagination."""
        return await self.lead_repo.search(filters, page, limit)

    async def update(
        self,
        lead_id: uuid.UUID,
        lead_data: LeadUpdate,
        actor_id: Optional[uuid.UUID] = None
    ) -> Lead:
        """
        Update a lead.
        LOST needs a lost reason; WON is only ever set by conversion.
        Won and Lost are terminal: their status cannot change.
        """
        lead = await self.get(lead_id)
        before = lead.model_dump(mode="json")
        update_data = lead_data.model_dump(exclude_unset=True)

        status = update_data.get("status")
        if status is not None and status != lead.status and lead.status in TERMINAL_LEAD_STATUSES:
            raise ValidationError(f"{lead.status.value} leads cannot change status", "status")
        if status == LeadStatus.WON:
            raise ValidationError("Leads are marked Won by converting them to an order", "status")
        if status == LeadStatus.LOST and not update_data.get("lost_reason") and not lead.lost_reason:
            raise ValidationError("Lost reason is required when setting status to Lost", "lost_reason")

        await self.lead_repo.update(lead_id, update_data)
        lead = await self.get(lead_id)

        await self.audit.log("lead", lead_id, Actions.UPDATE, actor_id, before=before, after=lead)
        return lead

    async def upsert_intake_form(
        self,
        lead_id: uuid.UUID,
        form_data: IntakeFormUpdate,
        actor_id: Optional[uuid.UUID] = None
    ) -> LeadIntakeForm:
        await self.get(lead_id)

        data = form_data.model_dump(exclude_unset=True)
        form = await self.lead_repo.get_intake_form(lead_id)
        if form is None:
            form = LeadIntakeForm(lead_id=lead_id, **data)
        else:
            for field, value in data.items():
                setattr(form, field, value)
            form.updated_at = datetime.utcnow()

        self.session.add(form)
        await self.session.commit()
        await self.session.refresh(form)

        await self.audit.log("lead_intake_form", lead_id, Actions.UPSERT, actor_id, after=form)
        return form

    async def set_products(
        self,
        lead_id: uuid.UUID,
        products: List[LeadProductIn],
        actor_id: Optional[uuid.UUID] = None
    ) -> List[LeadProduct]:
        """Replace all product lines of a lead."""
        await self.get(lead_id)
        for product in products:
            await self._ensure_product(product.product_code)

        codes = [p.product_code for p in products]
        if len(codes) != len(set(codes)):
            raise ValidationError("Each product can only appear once", "products")

        await self.lead_repo.replace_products(lead_id, [p.model_dump() for p in products])
        lead_products = await self.lead_repo.get_products(lead_id)

        await self.audit.log("lead_products", lead_id, Actions.SET, actor_id, after={"products": lead_products})
        return lead_products

    async def add_product(
        self,
        lead_id: uuid.UUID,
        product: LeadProductIn,
        actor_id: Optional[uuid.UUID] = None
    ) -> LeadProduct:
        """Add a product line, or update quantity and price if the lead already has it."""
        await self.get(lead_id)
        await self._ensure_product(product.product_code)

        line = await self.lead_repo.get_product(lead_id, product.product_code)
        if line is None:
            line = LeadProduct(lead_id=lead_id, **product.model_dump())
        else:
            line.quantity = product.quantity
            line.price_estimate = product.price_estimate

        self.session.add(line)
        await self.session.commit()
        await self.session.refresh(line)

        await self.audit.log("lead_products", lead_id, Actions.UPSERT, actor_id, after=line)
        return line

    async def remove_product(
        self,
        lead_id: uuid.UUID,
        product_code: str,
        actor_id: Optional[uuid.UUID] = None
    ) -> bool:
        line = await self.lead_repo.get_product(lead_id, product_code)
        if line is None:
            raise NotFoundError("Lead product", product_code)

        await self.session.delete(line)
        await self.session.commit()

        await self.audit.log(
            "lead_products", lead_id, Actions.DELETE, actor_id,
            before={"product_code": product_code}
        )
        return True

    async def reassign(
        self,
        lead_id: uuid.UUID,
        agent_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None
    ) -> Lead:
        """Move a lead to another agent (admin function)."""
        lead = await self.get(lead_id)
        previous_agent_id = lead.assigned_agent_id

        agent = await self.staff_repo.get(agent_id)
        if not agent or not agent.active:
            raise NotFoundError("Staff", str(agent_id))
        if agent.role not in (StaffRole.AGENT, StaffRole.ADMIN):
            raise ValidationError("Leads can only be assigned to agents or admins", "agent_id")

        await self.lead_repo.update(lead_id, {"assigned_agent_id": agent_id})
        lead = await self.get(lead_id)

        await self.audit.log(
            "lead", lead_id, Actions.REASSIGN, actor_id,
            before={"assigned_agent_id": previous_agent_id},
            after={"assigned_agent_id": agent_id}
        )
        return lead

    async def get_pipeline_stats(self, agent_id: Optional[uuid.UUID] = None) -> dict:
        """Lead count per status."""
        stats = {}
        for status in LeadStatus:
            filters = {"status": status, "assigned_agent_id": agent_id}
            stats[status.value] = await self.lead_repo.count(filters)
        return stats

    async def _ensure_product(self, product_code: str) -> Product:
        product = await self.product_repo.get(product_code)
        if not product:
            raise NotFoundError("Product", product_code)
        return product
