"""
Customer repository.
"""
from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.models.customer import Customer
from crm_backend.repositories.base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Repository for Customer operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Customer, session)

    async def get_by_phone_key(self, phone_key: str) -> Optional[Customer]:
        query = select(Customer).where(Customer.phone_key == phone_key)
        result = await self.session.exec(query)
        return result.first()
