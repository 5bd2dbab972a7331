"""
Customer model - a resolved real-world buyer.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class Customer(SQLModel, table=True):
    """
    Customer keyed by normalized phone.
    The unique constraint on phone_key is what stops concurrent conversions
    from creating two customers for one phone number.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    phone_key: str = Field(unique=True, index=True)
    phone1: Optional[str] = None
    name: Optional[str] = Field(default=None, index=True)

    # Address
    country: Optional[str] = None
    city: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
