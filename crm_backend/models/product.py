from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """Catalog product, keyed by its business code."""
    code: str = Field(primary_key=True)
    name: str
    default_price: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
