"""
Order materialization.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.config import settings
from crm_backend.models.em_series import normalize_country
from crm_backend.models.order import Order, OrderItem, OrderStatus
from crm_backend.repositories.order_repo import OrderRepository
from crm_backend.schemas.conversion import LeadSnapshot, LeadProductSnapshot, ConversionOptions


def resolve_order_country(snapshot: LeadSnapshot) -> str:
    """
    Shipping country, else the lead's country, else the configured default.
    Normalized, since it picks the EM series as well as Order.country.
    """
    intake = snapshot.intake_form
    for candidate in (intake.shipping_country if intake else None, snapshot.country):
        if candidate and candidate.strip():
            return normalize_country(candidate)
    return normalize_country(settings.DEFAULT_ORDER_COUNTRY)


def compute_order_value(products: List[LeadProductSnapshot]) -> Optional[Decimal]:
    """
    Sum of price estimate x quantity. Unpriced lines count as zero.
    Returns None rather than 0 so "unpriced" is not mistaken for "free".
    """
    total = sum(
        ((p.price_estimate or Decimal("0")) * p.quantity for p in products),
        Decimal("0")
    )
    return total if total > 0 else None


class OrderMaterializer:
    """Creates the order and its items from a lead snapshot, inside the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self.order_repo = OrderRepository(session)

    async def materialize(
        self,
        snapshot: LeadSnapshot,
        customer_id: uuid.UUID,
        em_number: str,
        options: ConversionOptions
    ) -> Order:
        order = await self.order_repo.create({
            "em_number": em_number,
            "order_date": datetime.utcnow(),
            "country": resolve_order_country(snapshot),
            "customer_id": customer_id,
            "sales_staff_id": snapshot.assigned_agent_id,
            "source_lead_id": snapshot.id,
            "order_status": OrderStatus.ONGOING,
            "payment_method": options.payment_method or snapshot.payment_method,
            "value": compute_order_value(snapshot.products),
            "notes": options.notes or snapshot.notes,
        }, commit=False)

        # Line value is copied from the estimate as-is, not recomputed
        items = [
            OrderItem(
                order_key=order.order_key,
                product_code=p.product_code,
                quantity=p.quantity,
                line_value=p.price_estimate,
            )
            for p in snapshot.products
        ]
        await self.order_repo.add_items(items, commit=False)
        return order
