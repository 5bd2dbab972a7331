"""
Audit log model - append-only trail of state changes.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from sqlalchemy.dialects.postgresql import JSONB

JsonColumnType = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(SQLModel, table=True):
    """
    Immutable record of who changed what.
    Written after the change is committed; never read by the business flows.
    """
    __tablename__ = "audit_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    entity_type: str = Field(index=True)  # lead, order, customer, em_series, ...
    entity_id: str = Field(index=True)
    action: str = Field(index=True)
    actor_user_id: Optional[uuid.UUID] = Field(default=None, index=True)

    before: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JsonColumnType))
    after: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JsonColumnType))

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# Action constants for consistency
class Actions:
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UPSERT = "UPSERT"
    SET = "SET"
    REASSIGN = "REASSIGN"
    CONVERT_TO_ORDER = "CONVERT_TO_ORDER"
