"""
Order models.
An order is created exactly once per converted lead; its items are a frozen
copy of the lead's products at conversion time.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlmodel import SQLModel, Field, Relationship

from crm_backend.models.customer import Customer
from crm_backend.models.lead import Lead
from crm_backend.models.staff import Staff


class OrderStatus(str, Enum):
    ONGOING = "ONGOING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    # System identifier, independent of the human-readable EM number
    order_key: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    em_number: str = Field(unique=True, index=True)

    order_date: datetime = Field(default_factory=datetime.utcnow, index=True)
    country: str = Field(index=True)
    customer_id: uuid.UUID = Field(foreign_key="customer.id", index=True)
    sales_staff_id: Optional[uuid.UUID] = Field(default=None, foreign_key="staff.id", index=True)
    # A lead converts to at most one order
    source_lead_id: Optional[uuid.UUID] = Field(default=None, foreign_key="lead.id", unique=True)

    order_status: OrderStatus = Field(default=OrderStatus.ONGOING, index=True)
    cancellation_reason: Optional[str] = None
    tracking_number: Optional[str] = None
    payment_method: Optional[str] = None
    # None means unpriced, not free
    value: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "OrderItem.product_code"},
    )
    customer: Optional[Customer] = Relationship()
    sales_staff: Optional[Staff] = Relationship()
    source_lead: Optional[Lead] = Relationship()


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    order_key: uuid.UUID = Field(foreign_key="orders.order_key", index=True)
    product_code: str = Field(foreign_key="product.code")
    quantity: int
    line_value: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)

    order: Optional[Order] = Relationship(back_populates="items")
