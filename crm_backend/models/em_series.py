"""
EM number series - per-country order number allocator state.
"""
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field


class EmSeries(SQLModel, table=True):
    """
    One row per country. Every EM number issued for the country is
    prefix + zero-padded counter for a counter in [1, next_counter).
    The row is only ever advanced while locked.
    """
    __tablename__ = "settings_em_series"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    country: str = Field(unique=True, index=True)
    prefix: str
    next_counter: int = Field(default=1)
    active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


def default_prefix(country: str) -> str:
    return f"EM-{country.upper()}-"


def normalize_country(country: str) -> str:
    """Series scope for a free-text country: ' uae ' and 'UAE' share one series."""
    return country.strip().upper()
