"""
Staff schemas.
"""
import uuid
from typing import Optional
from pydantic import BaseModel

from crm_backend.models.staff import StaffRole


class StaffSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: StaffRole
    country: Optional[str]

    class Config:
        from_attributes = True
