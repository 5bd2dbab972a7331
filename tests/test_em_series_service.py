import pytest

from crm_backend.core.exceptions import AlreadyExistsError, ValidationError, NotFoundError
from crm_backend.schemas.em_series import EmSeriesCreate, EmSeriesUpdate
from crm_backend.services.conversion.coordinator import LeadConversionService
from crm_backend.services.em_series_service import EmSeriesService


async def convert(session_factory, lead_id):
    async with session_factory() as session:
        return await LeadConversionService(session).convert_lead(lead_id)


async def test_create_uses_default_prefix(session):
    series = await EmSeriesService(session).create(EmSeriesCreate(country="QAT"))
    assert series.prefix == "EM-QAT-"
    assert series.next_counter == 1


async def test_duplicate_country_is_rejected(session):
    service = EmSeriesService(session)
    await service.create(EmSeriesCreate(country="UAE", prefix="UAE-"))
    with pytest.raises(AlreadyExistsError):
        await service.create(EmSeriesCreate(country="UAE"))


async def test_counter_only_moves_forward(session):
    service = EmSeriesService(session)
    await service.create(EmSeriesCreate(country="UAE", next_counter=10))

    with pytest.raises(ValidationError):
        await service.update("UAE", EmSeriesUpdate(next_counter=9))

    series = await service.update("UAE", EmSeriesUpdate(next_counter=50, active=False))
    assert series.next_counter == 50
    assert series.active is False


async def test_delete(session):
    service = EmSeriesService(session)
    await service.create(EmSeriesCreate(country="BHR"))

    assert await service.delete("BHR")
    with pytest.raises(NotFoundError):
        await service.get("BHR")


async def test_country_is_normalized(session):
    service = EmSeriesService(session)
    series = await service.create(EmSeriesCreate(country=" ksa "))

    assert series.country == "KSA"
    assert series.prefix == "EM-KSA-"
    assert (await service.get("ksa")).id == series.id
    with pytest.raises(AlreadyExistsError):
        await service.create(EmSeriesCreate(country="Ksa"))


async def test_series_with_issued_numbers_cannot_be_deleted(session_factory, seed):
    await convert(session_factory, await seed.lead())

    async with session_factory() as session:
        service = EmSeriesService(session)
        with pytest.raises(ValidationError):
            await service.delete("UAE")

        series = await service.update("UAE", EmSeriesUpdate(active=False))
        assert series.next_counter == 2


async def test_new_series_cannot_reuse_issued_numbers(session_factory, seed):
    await convert(session_factory, await seed.lead())

    async with session_factory() as session:
        service = EmSeriesService(session)
        with pytest.raises(ValidationError):
            await service.create(EmSeriesCreate(country="KSA", prefix="EM-UAE-"))

        series = await service.create(EmSeriesCreate(country="KSA", prefix="EM-UAE-", next_counter=2))
        assert series.next_counter == 2

        await service.create(EmSeriesCreate(country="QAT"))
        with pytest.raises(ValidationError):
            await service.update("QAT", EmSeriesUpdate(prefix="EM-UAE-"))
