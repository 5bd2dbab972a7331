"""
Lead repository with search and product/intake helpers.
"""
import uuid
from typing import Optional, List

from sqlmodel import select, or_
from sqlalchemy import delete
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import selectinload

from crm_backend.models.lead import Lead, LeadProduct, LeadIntakeForm
from crm_backend.repositories.base import BaseRepository
from crm_backend.schemas.lead import LeadFilter


class LeadRepository(BaseRepository[Lead]):
    """Repository for Lead operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Lead, session)

    async def get_with_relations(self, lead_id: uuid.UUID) -> Optional[Lead]:
        """Lead plus products, intake form, agent and customer in one read."""
        query = (
            select(Lead)
            .where(Lead.id == lead_id)
            .options(
                selectinload(Lead.products),
                selectinload(Lead.intake_form),
                selectinload(Lead.assigned_agent),
                selectinload(Lead.customer),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(query)
        return result.first()

    async def search(
        self,
        filters: Optional[LeadFilter] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        """Search leads with filtering."""
        query = select(Lead)

        if filters:
            if filters.status:
                query = query.where(Lead.status == filters.status)
            if filters.assigned_agent_id:
                query = query.where(Lead.assigned_agent_id == filters.assigned_agent_id)
            if filters.country:
                query = query.where(Lead.country == filters.country)
            if filters.source:
                query = query.where(Lead.source == filters.source)
            if filters.created_after:
                query = query.where(Lead.created_at >= filters.created_after)
            if filters.created_before:
                query = query.where(Lead.created_at <= filters.created_before)
            if filters.search:
                search_term = f"%{filters.search}%"
                query = query.where(
                    or_(
                        Lead.phone_key.ilike(search_term),
                        Lead.notes.ilike(search_term),
                    )
                )

        query = query.order_by(Lead.created_at.desc())
        return await self.paginate(query, page, limit)

    async def get_intake_form(self, lead_id: uuid.UUID) -> Optional[LeadIntakeForm]:
        query = select(LeadIntakeForm).where(LeadIntakeForm.lead_id == lead_id)
        result = await self.session.exec(query)
        return result.first()

    async def get_products(self, lead_id: uuid.UUID) -> List[LeadProduct]:
        query = (
            select(LeadProduct)
            .where(LeadProduct.lead_id == lead_id)
            .order_by(LeadProduct.product_code)
        )
        result = await self.session.exec(query)
        return result.all()

    async def get_product(self, lead_id: uuid.UUID, product_code: str) -> Optional[LeadProduct]:
        query = select(LeadProduct).where(
            LeadProduct.lead_id == lead_id,
            LeadProduct.product_code == product_code
        )
        result = await self.session.exec(query)
        return result.first()

    async def replace_products(self, lead_id: uuid.UUID, products: List[dict]) -> None:
        """Delete all product lines of a lead and insert the given ones, in one commit."""
        await self.session.execute(delete(LeadProduct).where(LeadProduct.lead_id == lead_id))
        for data in products:
            self.session.add(LeadProduct(lead_id=lead_id, **data))
        await self.session.commit()
