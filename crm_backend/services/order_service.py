"""
Order service - post-conversion order management.
"""
import uuid
import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.core.exceptions import NotFoundError, ValidationError
from crm_backend.repositories.order_repo import OrderRepository
from crm_backend.services.audit_service import AuditService
from crm_backend.models.audit import Actions
from crm_backend.models.order import Order, OrderStatus
from crm_backend.schemas.order import OrderUpdate, OrderFilter

logger = logging.getLogger(__name__)


class OrderService:
    """Service for order operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.order_repo = OrderRepository(session)
        self.audit = AuditService(session)

    async def get(self, order_key: uuid.UUID) -> Order:
        order = await self.order_repo.get_with_relations(order_key)
        if not order:
            raise NotFoundError("Order", str(order_key))
        return order

    async def get_by_em_number(self, em_number: str) -> Order:
        order = await self.order_repo.get_by_em_number(em_number)
        if not order:
            raise NotFoundError("Order with EM number", em_number)
        return order

    async def list(
        self,
        filters: Optional[OrderFilter] = None,
        page: int = 1,
        limit: int = 50
    ) -> dict:
        return await self.order_repo.search(filters, page, limit)

    async def update(
        self,
        order_key: uuid.UUID,
        data: OrderUpdate,
        actor_id: Optional[uuid.UUID] = None
    ) -> Order:
        """
        Update an order.

        An order can only be CANCELLED with a non-empty reason, either given
        now or already stored. Moving to any other status clears the reason.
        """
        order = await self.get(order_key)
        before = order.model_dump(mode="json")
        update_data = data.model_dump(exclude_unset=True)

        reason = update_data.get("cancellation_reason")
        if reason is not None:
            reason = reason.strip() or None
            update_data["cancellation_reason"] = reason

        new_status = update_data.get("order_status")
        if new_status == OrderStatus.CANCELLED:
            if not reason and not order.cancellation_reason:
                raise ValidationError(
                    "Cancellation reason is required when setting order status to Cancelled",
                    "cancellation_reason"
                )
        elif new_status is not None:
            update_data.pop("cancellation_reason", None)
            order.cancellation_reason = None

        await self.order_repo.update(order_key, update_data)
        order = await self.get(order_key)

        await self.audit.log("order", order_key, Actions.UPDATE, actor_id, before=before, after=order)
        return order

    async def mark_cancelled(
        self,
        order_key: uuid.UUID,
        cancellation_reason: str,
        actor_id: Optional[uuid.UUID] = None
    ) -> Order:
        if not cancellation_reason or not cancellation_reason.strip():
            raise ValidationError("Cancellation reason is required", "cancellation_reason")
        return await self.update(
            order_key,
            OrderUpdate(order_status=OrderStatus.CANCELLED, cancellation_reason=cancellation_reason),
            actor_id
        )

    async def mark_delivered(self, order_key: uuid.UUID, actor_id: Optional[uuid.UUID] = None) -> Order:
        return await self.update(order_key, OrderUpdate(order_status=OrderStatus.DELIVERED), actor_id)
