"""
Lead conversion schemas.

LeadSnapshot is a detached, read-only copy of everything conversion needs
to know about a lead. The validator and the order materializer only ever
see the snapshot, never live ORM rows.
"""
import uuid
from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, ConfigDict

from crm_backend.models.lead import LeadStatus


class LeadProductSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    product_code: str
    quantity: int
    price_estimate: Optional[Decimal] = None


class IntakeFormSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    customer_name: Optional[str] = None
    shipping_country: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_address_line1: Optional[str] = None
    shipping_address_line2: Optional[str] = None
    special_instructions: Optional[str] = None


class LeadSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    phone_key: Optional[str] = None
    status: LeadStatus
    country: Optional[str] = None
    assigned_agent_id: Optional[uuid.UUID] = None
    customer_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None
    products: List[LeadProductSnapshot] = []
    intake_form: Optional[IntakeFormSnapshot] = None


class ConversionOptions(BaseModel):
    """Optional overrides applied to the order created by conversion."""
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class ConversionValidationResult(BaseModel):
    can_convert: bool
    errors: List[str]
    warnings: List[str]
