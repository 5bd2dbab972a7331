"""
Lead model - a prospective sale prior to conversion into an order.
Owns its product selections and its shipping intake form.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint

from crm_backend.models.customer import Customer
from crm_backend.models.staff import Staff


class LeadStatus(str, Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    FOLLOW_UP = "FOLLOW_UP"
    WON = "WON"
    LOST = "LOST"


TERMINAL_LEAD_STATUSES = frozenset({LeadStatus.WON, LeadStatus.LOST})


class Lead(SQLModel, table=True):
    """
    Lead entity.
    WON and LOST are terminal: the record stays but no longer changes state.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Contact
    phone_key: Optional[str] = Field(default=None, index=True)  # E.164
    country: Optional[str] = Field(default=None, index=True)
    source: str = Field(default="manual", index=True)  # manual, whatsapp, call, csv

    # Pipeline
    status: LeadStatus = Field(default=LeadStatus.NEW, index=True)
    assigned_agent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="staff.id", index=True)
    customer_id: Optional[uuid.UUID] = Field(default=None, foreign_key="customer.id", index=True)

    # Free text
    notes: Optional[str] = None
    lost_reason: Optional[str] = None
    payment_method: Optional[str] = None  # hint, may be overridden at conversion

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    products: List["LeadProduct"] = Relationship(
        back_populates="lead",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "LeadProduct.product_code"},
    )
    intake_form: Optional["LeadIntakeForm"] = Relationship(
        back_populates="lead",
        sa_relationship_kwargs={"uselist": False, "cascade": "all, delete-orphan"},
    )
    assigned_agent: Optional[Staff] = Relationship()
    customer: Optional[Customer] = Relationship()


class LeadProduct(SQLModel, table=True):
    """A product line on a lead. One row per (lead, product code)."""
    __tablename__ = "lead_product"
    __table_args__ = (UniqueConstraint("lead_id", "product_code"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", index=True)
    product_code: str = Field(foreign_key="product.code")
    quantity: int = Field(default=1)
    price_estimate: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)

    lead: Optional[Lead] = Relationship(back_populates="products")


class LeadIntakeForm(SQLModel, table=True):
    """Shipping and contact details captured before conversion."""
    __tablename__ = "lead_intake_form"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="lead.id", unique=True)

    customer_name: Optional[str] = None
    alt_phone: Optional[str] = None

    # Shipping
    shipping_country: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    google_maps_link: Optional[str] = None
    preferred_delivery_time: Optional[str] = None
    special_instructions: Optional[str] = None

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    lead: Optional[Lead] = Relationship(back_populates="intake_form")
