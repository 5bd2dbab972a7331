import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlmodel import select

from crm_backend.core.exceptions import (
    ConversionValidationError, ConversionConflictError, NotFoundError, OrderConflictError,
    TransientStorageError
)
from crm_backend.models import Customer, Lead, LeadProduct, LeadStatus, OrderStatus, AuditLog
from crm_backend.models.em_series import EmSeries
from crm_backend.repositories.audit_repo import AuditLogRepository
from crm_backend.services.audit_service import AuditService
from crm_backend.repositories.customer_repo import CustomerRepository
from crm_backend.repositories.em_series_repo import EmSeriesRepository
from crm_backend.repositories.order_repo import OrderRepository
from crm_backend.schemas.conversion import ConversionOptions
from crm_backend.services.conversion.coordinator import LeadConversionService
from crm_backend.services.conversion.materializer import OrderMaterializer


async def convert(session_factory, lead_id, options=None, actor_id=None):
    async with session_factory() as session:
        return await LeadConversionService(session).convert_lead(lead_id, options, actor_id)


async def next_counter(session_factory, country="UAE"):
    async with session_factory() as session:
        series = await EmSeriesRepository(session).get_by_country(country)
        return series.next_counter if series else None


async def test_convert_lead_scenario(session_factory, seed):
    agent = await seed.staff("A1")
    lead_id = await seed.lead(agent_id=agent.id)

    order = await convert(session_factory, lead_id, actor_id=agent.id)

    assert order.em_number == "EM-UAE-000001"
    assert order.value == Decimal("200")
    assert order.country == "UAE"
    assert order.order_status == OrderStatus.ONGOING
    assert order.sales_staff_id == agent.id
    assert order.payment_method == "COD"
    assert [(i.product_code, i.quantity, i.line_value) for i in order.items] == [
        ("PRD001", 2, Decimal("100"))
    ]
    assert order.customer.phone_key == "+971501234567"
    assert order.source_lead.id == lead_id
    assert order.source_lead.status == LeadStatus.WON
    assert order.source_lead.customer_id == order.customer_id


async def test_options_override_lead_values(session_factory, seed):
    lead_id = await seed.lead(notes="lead notes")

    order = await convert(
        session_factory, lead_id, ConversionOptions(payment_method="CARD", notes="deliver after 6pm")
    )

    assert order.payment_method == "CARD"
    assert order.notes == "deliver after 6pm"


async def test_validate_conversion_is_a_dry_run(session_factory, seed):
    lead_id = await seed.lead(products=())

    async with session_factory() as session:
        result = await LeadConversionService(session).validate_conversion(lead_id)

    assert not result.can_convert
    assert any("at least one product" in e.lower() for e in result.errors)


async def test_invalid_lead_is_rejected_before_allocation(session_factory, seed):
    await seed.series("UAE", next_counter=3)
    lead_id = await seed.lead(products=())

    with pytest.raises(ConversionValidationError) as exc_info:
        await convert(session_factory, lead_id)

    assert "At least one product is required" in exc_info.value.errors
    assert await next_counter(session_factory) == 3

    async with session_factory() as session:
        assert (await session.exec(select(Customer))).all() == []
        lead = await session.get(Lead, lead_id)
        assert lead.status == LeadStatus.CONTACTED


async def test_unknown_lead(session_factory):
    with pytest.raises(NotFoundError):
        await convert(session_factory, uuid.uuid4())


async def test_failure_after_allocation_rolls_everything_back(session_factory, seed, monkeypatch):
    lead_id = await seed.lead()

    async def broken_materialize(self, *args, **kwargs):
        raise RuntimeError("malformed order item")

    with monkeypatch.context() as m:
        m.setattr(OrderMaterializer, "materialize", broken_materialize)
        with pytest.raises(RuntimeError):
            await convert(session_factory, lead_id)

    async with session_factory() as session:
        assert (await session.exec(select(Customer))).all() == []
        assert (await session.exec(select(EmSeries))).all() == []
        lead = await session.get(Lead, lead_id)
        assert lead.status == LeadStatus.CONTACTED
        assert lead.customer_id is None

    order = await convert(session_factory, lead_id)
    assert order.em_number == "EM-UAE-000001"


async def test_second_conversion_of_same_lead_is_rejected(session_factory, seed):
    lead_id = await seed.lead()
    await convert(session_factory, lead_id)

    with pytest.raises(ConversionValidationError) as exc_info:
        await convert(session_factory, lead_id)

    assert "already converted" in exc_info.value.errors[0]
    assert await next_counter(session_factory) == 2


async def test_same_phone_leads_share_one_customer(session_factory, seed):
    first = await convert(session_factory, await seed.lead())
    second = await convert(session_factory, await seed.lead())

    assert first.customer_id == second.customer_id
    assert first.em_number != second.em_number

    async with session_factory() as session:
        assert len((await session.exec(select(Customer))).all()) == 1


async def test_customer_race_fails_cleanly_and_retry_links(session_factory, seed, monkeypatch):
    first = await convert(session_factory, await seed.lead())
    lead_id = await seed.lead()

    async def lost_the_race(self, phone_key):
        return None

    with monkeypatch.context() as m:
        # Simulates a concurrent writer inserting the customer after our lookup
        m.setattr(CustomerRepository, "get_by_phone_key", lost_the_race)
        with pytest.raises(ConversionConflictError):
            await convert(session_factory, lead_id)

    assert await next_counter(session_factory) == 2

    retried = await convert(session_factory, lead_id)
    assert retried.customer_id == first.customer_id
    assert retried.em_number == "EM-UAE-000002"


async def test_order_items_are_frozen_at_conversion(session_factory, seed):
    lead_id = await seed.lead()
    order = await convert(session_factory, lead_id)

    async with session_factory() as session:
        line = (await session.exec(select(LeadProduct).where(LeadProduct.lead_id == lead_id))).one()
        line.quantity = 10
        line.price_estimate = Decimal("1")
        session.add(line)
        await session.commit()

    async with session_factory() as session:
        items = await OrderRepository(session).get_items(order.order_key)
        assert [(i.quantity, i.line_value) for i in items] == [(2, Decimal("100"))]


async def test_conversion_is_audited(session_factory, seed):
    agent = await seed.staff()
    lead_id = await seed.lead(agent_id=agent.id)
    order = await convert(session_factory, lead_id, actor_id=agent.id)

    async with session_factory() as session:
        audit = AuditService(session)
        lead_entries = await audit.get_by_entity("lead", lead_id)
        order_entries = await audit.get_by_entity("order", order.order_key)
        recent = await audit.get_recent()

    assert [e.action for e in lead_entries] == ["CONVERT_TO_ORDER"]
    assert lead_entries[0].before == {"status": "CONTACTED"}
    assert lead_entries[0].after["order_key"] == str(order.order_key)
    assert [e.action for e in order_entries] == ["CREATE"]
    assert order_entries[0].after["em_number"] == "EM-UAE-000001"
    assert order_entries[0].actor_user_id == agent.id
    assert len(recent) == 2


async def test_audit_failure_does_not_fail_conversion(session_factory, seed, monkeypatch):
    lead_id = await seed.lead()

    async def broken_log(self, *args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(AuditLogRepository, "log", broken_log)

    order = await convert(session_factory, lead_id)
    assert order.em_number == "EM-UAE-000001"

    async with session_factory() as session:
        assert (await session.exec(select(AuditLog))).all() == []
        lead = await session.get(Lead, lead_id)
        assert lead.status == LeadStatus.WON


async def test_country_case_and_spacing_share_one_series(session_factory, seed):
    first = await convert(session_factory, await seed.lead(shipping_country="UAE"))
    second = await convert(session_factory, await seed.lead(shipping_country="uae"))
    third = await convert(session_factory, await seed.lead(shipping_country=" Uae ", country="uae"))

    assert [o.em_number for o in (first, second, third)] == [
        "EM-UAE-000001", "EM-UAE-000002", "EM-UAE-000003"
    ]
    assert {o.country for o in (first, second, third)} == {"UAE"}

    async with session_factory() as session:
        series = (await session.exec(select(EmSeries))).all()
    assert [(s.country, s.next_counter) for s in series] == [("UAE", 4)]


async def test_counter_behind_stored_orders_is_a_permanent_conflict(session_factory, seed):
    await convert(session_factory, await seed.lead())
    lead_id = await seed.lead()

    async with session_factory() as session:
        series = await EmSeriesRepository(session).get_by_country("UAE")
        series.next_counter = 1
        session.add(series)
        await session.commit()

    with pytest.raises(OrderConflictError) as exc_info:
        await convert(session_factory, lead_id)

    assert not isinstance(exc_info.value, TransientStorageError)
    assert exc_info.value.status_code == 409
    assert await next_counter(session_factory) == 1

    async with session_factory() as session:
        lead = await session.get(Lead, lead_id)
        assert lead.status == LeadStatus.CONTACTED


async def test_concurrent_conversions_get_distinct_numbers(session_factory, seed):
    lead_ids = [await seed.lead(phone_key=f"+97150123450{n}") for n in range(6)]

    orders = await asyncio.gather(*(convert(session_factory, lead_id) for lead_id in lead_ids))

    assert sorted(o.em_number for o in orders) == [f"EM-UAE-{n:06d}" for n in range(1, 7)]
    assert {o.source_lead_id for o in orders} == set(lead_ids)
    assert await next_counter(session_factory) == 7

    async with session_factory() as session:
        leads = (await session.exec(select(Lead).where(Lead.id.in_(lead_ids)))).all()
        assert {lead.status for lead in leads} == {LeadStatus.WON}
        assert len((await session.exec(select(Customer))).all()) == 6


async def test_new_series_starts_above_numbers_issued_under_its_prefix(session_factory, seed):
    async with session_factory() as session:
        session.add(EmSeries(country="KSA", prefix="EM-QAT-", next_counter=5))
        await session.commit()

    first = await convert(session_factory, await seed.lead(shipping_country="KSA"))
    second = await convert(session_factory, await seed.lead(shipping_country="QAT"))

    assert first.em_number == "EM-QAT-000005"
    assert second.em_number == "EM-QAT-000006"
    assert await next_counter(session_factory, "QAT") == 7
