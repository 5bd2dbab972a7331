"""
Base repository with generic CRUD operations.

Write methods commit by default. Pass commit=False to only flush, so the
write joins a transaction the caller owns (see database.serializable_transaction).
"""
from typing import TypeVar, Generic, Type, Optional, List, Any
from datetime import datetime

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from crm_backend.core.pagination import create_paginated_response

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository with CRUD operations.
    Inherit and specify the model class.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def _save(self, db_obj: ModelType, commit: bool) -> ModelType:
        self.session.add(db_obj)
        if commit:
            await self.session.commit()
            await self.session.refresh(db_obj)
        else:
            await self.session.flush()
        return db_obj

    async def create(self, obj_in: dict, commit: bool = True) -> ModelType:
        """Create a new record."""
        return await self._save(self.model(**obj_in), commit)

    async def insert_if_missing(self, values: dict, conflict_columns: List[str]) -> bool:
        """
        INSERT ... ON CONFLICT DO NOTHING in one statement.
        Concurrent callers racing on the same key all end up seeing one row.
        Returns True if this call inserted it.
        """
        row = self.model(**values).model_dump()
        dialect = self.session.bind.dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(self.model).values(**row).on_conflict_do_nothing(index_elements=conflict_columns)
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get(self, id: Any) -> Optional[ModelType]:
        """Get a record by primary key."""
        return await self.session.get(self.model, id)

    async def get_by_field(self, field: str, value: Any) -> Optional[ModelType]:
        """Get a record by a specific field."""
        query = select(self.model).where(getattr(self.model, field) == value)
        result = await self.session.exec(query)
        return result.first()

    def _apply_filters(self, query, filters: Optional[dict]):
        if filters:
            for field, value in filters.items():
                if hasattr(self.model, field) and value is not None:
                    query = query.where(getattr(self.model, field) == value)
        return query

    async def list(
        self,
        filters: Optional[dict] = None,
        order_by: str = "created_at",
        order_desc: bool = True
    ) -> List[ModelType]:
        """List all records with optional filters."""
        query = self._apply_filters(select(self.model), filters)

        if hasattr(self.model, order_by):
            order_column = getattr(self.model, order_by)
            query = query.order_by(order_column.desc() if order_desc else order_column)

        result = await self.session.exec(query)
        return result.all()

    async def paginate(self, query, page: int = 1, limit: int = 20) -> dict:
        """Count and slice an already-filtered, already-ordered query."""
        count_query = select(func.count()).select_from(query.subquery())
        total_result = await self.session.exec(count_query)
        total = total_result.one()

        offset = (page - 1) * limit
        result = await self.session.exec(query.offset(offset).limit(limit))
        items = result.all()

        return create_paginated_response(items, total, page, limit)

    async def update(self, id: Any, obj_in: dict, commit: bool = True) -> Optional[ModelType]:
        """Update a record. None values are skipped."""
        db_obj = await self.get(id)
        if not db_obj:
            return None

        for field, value in obj_in.items():
            if hasattr(db_obj, field) and value is not None:
                setattr(db_obj, field, value)

        # Update timestamp if exists
        if hasattr(db_obj, 'updated_at'):
            db_obj.updated_at = datetime.utcnow()

        return await self._save(db_obj, commit)

    async def delete(self, id: Any, commit: bool = True) -> bool:
        """Delete a record."""
        db_obj = await self.get(id)
        if not db_obj:
            return False

        await self.session.delete(db_obj)
        if commit:
            await self.session.commit()
        else:
            await self.session.flush()
        return True

    async def count(self, filters: Optional[dict] = None) -> int:
        """Count records."""
        query = self._apply_filters(select(func.count()).select_from(self.model), filters)
        result = await self.session.exec(query)
        return result.one()
