"""
Orders API routes.
"""
import uuid
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from crm_backend.database import get_session
from crm_backend.services.order_service import OrderService
from crm_backend.schemas.order import (
    OrderResponse, OrderSummary, OrderUpdate, OrderCancel, OrderFilter
)
from crm_backend.core.pagination import PaginatedResponse
from crm_backend.api.deps import get_current_staff, require_roles
from crm_backend.models.order import OrderStatus
from crm_backend.models.staff import Staff, StaffRole

router = APIRouter(prefix="/api/orders", tags=["orders"])

order_staff = require_roles(StaffRole.ADMIN, StaffRole.CS, StaffRole.DELIVERY)


@router.get("/", response_model=PaginatedResponse[OrderSummary])
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    order_status: Optional[OrderStatus] = None,
    sales_staff_id: Optional[uuid.UUID] = None,
    customer_id: Optional[uuid.UUID] = None,
    country: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    search: Optional[str] = None,
    current_staff: Staff = Depends(get_current_staff),
    session: AsyncSession = Depends(get_session)
):
    """List orders. Agents only see orders they sold."""
    if current_staff.role == StaffRole.AGENT:
        sales_staff_id = current_staff.id

    filters = OrderFilter(
        order_status=order_status,
        sales_staff_id=sales_staff_id,
        customer_id=customer_id,
        country=country,
        from_date=from_date,
        to_date=to_date,
        search=search
    )

    order_service = OrderService(session)
    return await order_service.list(filters, page, limit)


@router.get("/em/{em_number}", response_model=OrderResponse)
async def get_order_by_em_number(
    em_number: str,
    current_staff: Staff = Depends(get_current_staff),
    session: AsyncSession = Depends(get_session)
):
    order_service = OrderService(session)
    return await order_service.get_by_em_number(em_number)


@router.get("/{order_key}", response_model=OrderResponse)
async def get_order(
    order_key: uuid.UUID,
    current_staff: Staff = Depends(get_current_staff),
    session: AsyncSession = Depends(get_session)
):
    """Get an order with customer, items and source lead."""
    order_service = OrderService(session)
    return await order_service.get(order_key)


@router.patch("/{order_key}", response_model=OrderResponse)
async def update_order(
    order_key: uuid.UUID,
    data: OrderUpdate,
    current_staff: Staff = Depends(order_staff),
    session: AsyncSession = Depends(get_session)
):
    """Update status, tracking or payment details of an order."""
    order_service = OrderService(session)
    return await order_service.update(order_key, data, current_staff.id)


@router.post("/{order_key}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_key: uuid.UUID,
    data: OrderCancel,
    current_staff: Staff = Depends(order_staff),
    session: AsyncSession = Depends(get_session)
):
    order_service = OrderService(session)
    return await order_service.mark_cancelled(order_key, data.cancellation_reason, current_staff.id)


@router.post("/{order_key}/deliver", response_model=OrderResponse)
async def deliver_order(
    order_key: uuid.UUID,
    current_staff: Staff = Depends(order_staff),
    session: AsyncSession = Depends(get_session)
):
    order_service = OrderService(session)
    return await order_service.mark_delivered(order_key, current_staff.id)
