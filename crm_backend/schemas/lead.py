"""
Lead schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from crm_backend.models.lead import LeadStatus
from crm_backend.schemas.staff import StaffSummary


class LeadCreate(BaseModel):
    """Create a new lead."""
    phone: Optional[str] = None
    country: Optional[str] = None
    source: str = "manual"
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    assigned_agent_id: Optional[uuid.UUID] = None

    class Config:
        json_schema_extra = {
            "example": {
                "phone": "0501234567",
                "country": "UAE",
                "source": "whatsapp",
                "notes": "Asked about PRD001"
            }
        }


class LeadUpdate(BaseModel):
    """Update an existing lead."""
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None
    lost_reason: Optional[str] = None
    payment_method: Optional[str] = None
    country: Optional[str] = None


class IntakeFormUpdate(BaseModel):
    customer_name: Optional[str] = None
    alt_phone: Optional[str] = None
    shipping_country: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    google_maps_link: Optional[str] = None
    preferred_delivery_time: Optional[str] = None
    special_instructions: Optional[str] = None


class LeadProductIn(BaseModel):
    product_code: str
    quantity: int = Field(default=1, ge=1)
    price_estimate: Optional[Decimal] = Field(default=None, ge=0)


class LeadProductsSet(BaseModel):
    """Replace all products on a lead."""
    products: List[LeadProductIn]


class LeadReassign(BaseModel):
    agent_id: uuid.UUID


class LeadProductResponse(BaseModel):
    id: uuid.UUID
    product_code: str
    quantity: int
    price_estimate: Optional[Decimal]

    class Config:
        from_attributes = True


class IntakeFormResponse(IntakeFormUpdate):
    id: uuid.UUID
    lead_id: uuid.UUID
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadSummary(BaseModel):
    """Lead without relations."""
    id: uuid.UUID
    phone_key: Optional[str]
    country: Optional[str]
    source: str
    status: LeadStatus
    assigned_agent_id: Optional[uuid.UUID]
    customer_id: Optional[uuid.UUID]
    notes: Optional[str]
    lost_reason: Optional[str]
    payment_method: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadResponse(LeadSummary):
    """Lead with products, intake form and assigned agent."""
    products: List[LeadProductResponse] = []
    intake_form: Optional[IntakeFormResponse] = None
    assigned_agent: Optional[StaffSummary] = None


class LeadFilter(BaseModel):
    """Lead filtering options."""
    status: Optional[LeadStatus] = None
    assigned_agent_id: Optional[uuid.UUID] = None
    country: Optional[str] = None
    source: Optional[str] = None
    search: Optional[str] = None  # Search in phone and notes
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
