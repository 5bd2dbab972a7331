"""
Customer schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class CustomerResponse(BaseModel):
    id: uuid.UUID
    phone_key: str
    phone1: Optional[str]
    name: Optional[str]
    country: Optional[str]
    city: Optional[str]
    address_line1: Optional[str]
    address_line2: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
