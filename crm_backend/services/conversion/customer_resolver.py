"""
Customer resolution for conversion.
"""
import uuid
import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.repositories.customer_repo import CustomerRepository
from crm_backend.repositories.lead_repo import LeadRepository
from crm_backend.schemas.conversion import LeadSnapshot, IntakeFormSnapshot

logger = logging.getLogger(__name__)


class CustomerResolver:
    """
    Get-or-create the customer for a lead, keyed by phone.

    Runs inside the conversion transaction: a customer created here is
    rolled back with everything else if a later step fails.
    """

    def __init__(self, session: AsyncSession):
        self.customer_repo = CustomerRepository(session)
        self.lead_repo = LeadRepository(session)

    async def resolve(self, snapshot: LeadSnapshot) -> uuid.UUID:
        # Already linked: keep it as is, no merge
        if snapshot.customer_id:
            return snapshot.customer_id

        customer = await self.customer_repo.get_by_phone_key(snapshot.phone_key)
        if not customer:
            intake = snapshot.intake_form or IntakeFormSnapshot()
            customer = await self.customer_repo.create({
                "phone_key": snapshot.phone_key,
                "phone1": snapshot.phone_key,
                "name": intake.customer_name,
                "country": intake.shipping_country,
                "city": intake.shipping_city,
                "address_line1": intake.shipping_address_line1,
                "address_line2": intake.shipping_address_line2,
            }, commit=False)
            logger.info(f"Created new customer {customer.id} for {snapshot.phone_key}")

        await self.lead_repo.update(snapshot.id, {"customer_id": customer.id}, commit=False)
        return customer.id
