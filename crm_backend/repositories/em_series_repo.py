"""
EM series repository - the only place that touches allocator rows.
"""
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.models.em_series import EmSeries, default_prefix
from crm_backend.repositories.base import BaseRepository


class EmSeriesRepository(BaseRepository[EmSeries]):
    """Repository for EmSeries operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(EmSeries, session)

    async def get_by_country(self, country: str) -> Optional[EmSeries]:
        return await self.get_by_field("country", country)

    async def list_all(self) -> List[EmSeries]:
        return await self.list(order_by="country", order_desc=False)

    async def ensure_exists(self, country: str, next_counter: int = 1) -> bool:
        """Create the country's series unless it exists. True if created."""
        return await self.insert_if_missing(
            {"country": country, "prefix": default_prefix(country), "next_counter": next_counter},
            conflict_columns=["country"],
        )

    async def lock_by_country(self, country: str) -> Optional[EmSeries]:
        """
        SELECT ... FOR UPDATE on the country's row.
        Blocks until any other transaction holding the row finishes.
        """
        query = (
            select(EmSeries)
            .where(EmSeries.country == country)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(query)
        return result.first()
