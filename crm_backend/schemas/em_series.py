"""
EM series settings schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class EmSeriesCreate(BaseModel):
    country: str
    prefix: Optional[str] = None  # defaults to EM-<COUNTRY>-
    next_counter: int = Field(default=1, ge=1)
    active: bool = True

    class Config:
        json_schema_extra = {
            "example": {"country": "UAE", "prefix": "EM-UAE-", "next_counter": 1}
        }


class EmSeriesUpdate(BaseModel):
    prefix: Optional[str] = None
    next_counter: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None


class EmSeriesResponse(BaseModel):
    id: uuid.UUID
    country: str
    prefix: str
    next_counter: int
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
