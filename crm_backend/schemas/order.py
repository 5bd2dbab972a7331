"""
Order schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel

from crm_backend.models.order import OrderStatus
from crm_backend.schemas.customer import CustomerResponse
from crm_backend.schemas.lead import LeadSummary
from crm_backend.schemas.staff import StaffSummary


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    product_code: str
    quantity: int
    line_value: Optional[Decimal]

    class Config:
        from_attributes = True


class OrderSummary(BaseModel):
    """Order without relations, for lists."""
    order_key: uuid.UUID
    em_number: str
    order_date: datetime
    country: str
    customer_id: uuid.UUID
    sales_staff_id: Optional[uuid.UUID]
    source_lead_id: Optional[uuid.UUID]
    order_status: OrderStatus
    cancellation_reason: Optional[str]
    tracking_number: Optional[str]
    payment_method: Optional[str]
    value: Optional[Decimal]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(OrderSummary):
    """Fully hydrated order."""
    items: List[OrderItemResponse] = []
    customer: Optional[CustomerResponse] = None
    sales_staff: Optional[StaffSummary] = None
    source_lead: Optional[LeadSummary] = None


class OrderUpdate(BaseModel):
    order_status: Optional[OrderStatus] = None
    cancellation_reason: Optional[str] = None
    tracking_number: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    value: Optional[Decimal] = None


class OrderCancel(BaseModel):
    cancellation_reason: str


class OrderFilter(BaseModel):
    order_status: Optional[OrderStatus] = None
    sales_staff_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    country: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    search: Optional[str] = None  # EM number or tracking number
