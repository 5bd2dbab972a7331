from datetime import datetime

from sqlmodel import SQLModel, Field


class AssignmentCursor(SQLModel, table=True):
    """Last round-robin index handed out per scope (a country, or "global")."""
    __tablename__ = "assignment_cursor"

    scope: str = Field(primary_key=True)
    last_index: int = Field(default=-1)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
