"""
Order repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import selectinload

from crm_backend.models.order import Order, OrderItem
from crm_backend.repositories.base import BaseRepository
from crm_backend.schemas.order import OrderFilter


class OrderRepository(BaseRepository[Order]):
    """Repository for Order operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Order, session)

    def _with_relations(self, query):
        return query.options(
            selectinload(Order.items),
            selectinload(Order.customer),
            selectinload(Order.sales_staff),
            selectinload(Order.source_lead),
        ).execution_options(populate_existing=True)

    async def get_with_relations(self, order_key: uuid.UUID) -> Optional[Order]:
        """Order with customer, sales staff, items and source lead."""
        query = self._with_relations(select(Order).where(Order.order_key == order_key))
        result = await self.session.exec(query)
        return result.first()

    async def get_by_em_number(self, em_number: str) -> Optional[Order]:
        query = self._with_relations(select(Order).where(Order.em_number == em_number))
        result = await self.session.exec(query)
        return result.first()

    async def max_em_counter(self, prefix: str) -> int:
        """Highest counter issued under an EM prefix, 0 if none."""
        query = select(Order.em_number).where(Order.em_number.startswith(prefix, autoescape=True))
        result = await self.session.exec(query)
        suffixes = (em_number[len(prefix):] for em_number in result.all())
        return max((int(s) for s in suffixes if s.isdigit()), default=0)

    async def get_items(self, order_key: uuid.UUID) -> List[OrderItem]:
        query = (
            select(OrderItem)
            .where(OrderItem.order_key == order_key)
            .order_by(OrderItem.product_code)
        )
        result = await self.session.exec(query)
        return result.all()

    async def add_items(self, items: List[OrderItem], commit: bool = True) -> List[OrderItem]:
        self.session.add_all(items)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        return items

    async def search(
        self,
        filters: Optional[OrderFilter] = None,
        page: int = 1,
        limit: int = 50
    ) -> dict:
        """Search orders with filtering."""
        query = select(Order)

        if filters:
            if filters.order_status:
                query = query.where(Order.order_status == filters.order_status)
            if filters.sales_staff_id:
                query = query.where(Order.sales_staff_id == filters.sales_staff_id)
            if filters.customer_id:
                query = query.where(Order.customer_id == filters.customer_id)
            if filters.country:
                query = query.where(Order.country == filters.country)
            if filters.from_date:
                query = query.where(Order.order_date >= filters.from_date)
            if filters.to_date:
                query = query.where(Order.order_date <= filters.to_date)
            if filters.search:
                search_term = f"%{filters.search}%"
                query = query.where(
                    or_(
                        Order.em_number.ilike(search_term),
                        Order.tracking_number.ilike(search_term),
                    )
                )

        query = query.order_by(Order.created_at.desc())
        return await self.paginate(query, page, limit)
