"""
EM number allocation.

Each country has one EmSeries row. Allocation is a locked
read-increment-write on that row inside the caller's transaction, so a
rolled-back conversion also rolls back its counter increment, and two
conversions for the same country can never read the same counter value.
"""
import logging
from datetime import datetime

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.config import settings
from crm_backend.core.exceptions import SequenceUnavailableError
from crm_backend.models.em_series import default_prefix, normalize_country
from crm_backend.repositories.em_series_repo import EmSeriesRepository
from crm_backend.repositories.order_repo import OrderRepository

logger = logging.getLogger(__name__)


def format_em_number(prefix: str, counter: int, width: int = None) -> str:
    """EM-UAE- + 42 -> EM-UAE-000042"""
    return f"{prefix}{str(counter).zfill(width or settings.EM_NUMBER_PAD_WIDTH)}"


class EmNumberAllocator:
    """Issues EM numbers. Must be called inside database.serializable_transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.series_repo = EmSeriesRepository(session)
        self.order_repo = OrderRepository(session)

    async def allocate(self, country: str) -> str:
        country = normalize_country(country)

        series = await self.series_repo.lock_by_country(country)
        if series is None:
            # Creating and locking a new series happen in the same transaction,
            # so first-time allocations for a new country are serialized too.
            start = await self.order_repo.max_em_counter(default_prefix(country)) + 1
            if await self.series_repo.ensure_exists(country, start):
                logger.info(f"Bootstrapped EM series for {country} at {start}")
            series = await self.series_repo.lock_by_country(country)

        if not series.active:
            raise SequenceUnavailableError(country)

        counter = series.next_counter
        em_number = format_em_number(series.prefix, counter)

        series.next_counter = counter + 1
        series.updated_at = datetime.utcnow()
        self.session.add(series)
        await self.session.flush()

        logger.info(f"Allocated EM number {em_number} for {country}")
        return em_number
