"""
Shared fixtures: a fresh SQLite database file per test, seed helpers
and an HTTP client bound to that database.
"""
import uuid
from decimal import Decimal
from typing import Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import create_engine, init_db, get_session
from crm_backend.core.security import create_access_token
from crm_backend.main import app
from crm_backend.models import (
    Staff, StaffRole, Product, Lead, LeadProduct, LeadIntakeForm, LeadStatus, EmSeries
)

DEFAULT_PRODUCTS = (("PRD001", 2, Decimal("100")),)


@pytest.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}", echo=False)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Seeder:
    """Writes fixtures in short-lived sessions so no test holds the SQLite write lock."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, *objs):
        async with self.session_factory() as session:
            session.add_all(objs)
            await session.commit()
        return objs[0]

    async def staff(
        self,
        name: str = "Agent One",
        role: StaffRole = StaffRole.AGENT,
        country: Optional[str] = "UAE",
        active: bool = True
    ) -> Staff:
        email = f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:6]}@example.com"
        return await self._add(Staff(name=name, email=email, role=role, country=country, active=active))

    async def products(self, *codes: str):
        codes = codes or ("PRD001", "PRD002")
        async with self.session_factory() as session:
            for code in codes:
                session.add(Product(code=code, name=f"Product {code}", default_price=Decimal("100")))
            await session.commit()

    async def series(self, country: str = "UAE", next_counter: int = 1, active: bool = True) -> EmSeries:
        return await self._add(EmSeries(
            country=country, prefix=f"EM-{country}-", next_counter=next_counter, active=active
        ))

    async def lead(
        self,
        phone_key: Optional[str] = "+971501234567",
        status: LeadStatus = LeadStatus.CONTACTED,
        country: Optional[str] = "UAE",
        agent_id: Optional[uuid.UUID] = None,
        products=DEFAULT_PRODUCTS,
        intake: bool = True,
        customer_name: Optional[str] = "Ahmed Ali",
        shipping_country: Optional[str] = "UAE",
        payment_method: Optional[str] = "COD",
        notes: Optional[str] = None
    ) -> uuid.UUID:
        lead = Lead(
            phone_key=phone_key,
            status=status,
            country=country,
            assigned_agent_id=agent_id,
            payment_method=payment_method,
            notes=notes
        )
        rows = [lead]
        for code, quantity, price in products:
            rows.append(LeadProduct(
                lead_id=lead.id, product_code=code, quantity=quantity, price_estimate=price
            ))
        if intake:
            rows.append(LeadIntakeForm(
                lead_id=lead.id,
                customer_name=customer_name,
                shipping_country=shipping_country,
                shipping_city="Dubai",
                shipping_address_line1="Street 1",
            ))
        await self._add(*rows)
        return lead.id


@pytest.fixture
async def seed(session_factory):
    seeder = Seeder(session_factory)
    await seeder.products()
    return seeder


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def make(staff: Staff) -> dict:
        token = create_access_token({"staff_id": str(staff.id)})
        return {"Authorization": f"Bearer {token}"}
    return make
