"""
EM series settings - admin management of per-country order numbering.
"""
import uuid
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.core.exceptions import NotFoundError, AlreadyExistsError, ValidationError
from crm_backend.repositories.em_series_repo import EmSeriesRepository
from crm_backend.repositories.order_repo import OrderRepository
from crm_backend.services.audit_service import AuditService
from crm_backend.models.audit import Actions
from crm_backend.models.em_series import EmSeries, default_prefix, normalize_country
from crm_backend.schemas.em_series import EmSeriesCreate, EmSeriesUpdate


class EmSeriesService:
    """Service for EM series settings."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.series_repo = EmSeriesRepository(session)
        self.order_repo = OrderRepository(session)
        self.audit = AuditService(session)

    async def list(self) -> List[EmSeries]:
        return await self.series_repo.list_all()

    async def get(self, country: str) -> EmSeries:
        series = await self.series_repo.get_by_country(normalize_country(country))
        if not series:
            raise NotFoundError("EM series", country)
        return series

    async def create(self, data: EmSeriesCreate, actor_id: uuid.UUID = None) -> EmSeries:
        country = normalize_country(data.country)
        if await self.series_repo.get_by_country(country):
            raise AlreadyExistsError("EM series", "country", country)

        prefix = data.prefix or default_prefix(country)
        await self._ensure_unissued(prefix, data.next_counter)

        series = await self.series_repo.create({
            "country": country,
            "prefix": prefix,
            "next_counter": data.next_counter,
            "active": data.active,
        })
        await self.audit.log("em_series", series.country, Actions.CREATE, actor_id, after=series)
        return series

    async def update(self, country: str, data: EmSeriesUpdate, actor_id: uuid.UUID = None) -> EmSeries:
        """
        Update prefix, counter or active flag.
        The counter may only move forward: moving it back would reissue numbers.
        """
        series = await self.get(country)
        before = series.model_dump(mode="json")

        if data.next_counter is not None and data.next_counter < series.next_counter:
            raise ValidationError(
                f"next_counter cannot go below {series.next_counter}", "next_counter"
            )
        if data.prefix is not None and data.prefix != series.prefix:
            await self._ensure_unissued(data.prefix, data.next_counter or series.next_counter)

        series = await self.series_repo.update(series.id, data.model_dump(exclude_unset=True))
        await self.audit.log("em_series", series.country, Actions.UPDATE, actor_id, before=before, after=series)
        return series

    async def delete(self, country: str, actor_id: uuid.UUID = None) -> bool:
        """Only unused series can go; a recreated one would start again at 1."""
        series = await self.get(country)
        if series.next_counter > 1:
            raise ValidationError(
                f"EM series for {series.country} has issued numbers; deactivate it instead", "country"
            )

        before = series.model_dump(mode="json")
        success = await self.series_repo.delete(series.id)
        if success:
            await self.audit.log("em_series", series.country, Actions.DELETE, actor_id, before=before)
        return success

    async def _ensure_unissued(self, prefix: str, next_counter: int):
        issued = await self.order_repo.max_em_counter(prefix)
        if next_counter <= issued:
            raise ValidationError(
                f"next_counter must be above {issued}, already issued under {prefix}", "next_counter"
            )
