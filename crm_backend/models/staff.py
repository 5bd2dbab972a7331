"""
Staff model.
Agents own leads; admins can act on anything.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class StaffRole(str, Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    DELIVERY = "DELIVERY"
    CS = "CS"


class Staff(SQLModel, table=True):
    """A member of staff. Role is a closed set, never a free-form string."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    email: str = Field(unique=True, index=True)
    role: StaffRole = Field(default=StaffRole.AGENT, index=True)
    country: Optional[str] = Field(default=None, index=True)
    active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
