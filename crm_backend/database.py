from contextlib import asynccontextmanager

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from .config import settings


def create_engine(url: str = settings.DATABASE_URL, echo: bool = settings.SQL_ECHO) -> AsyncEngine:
    """
    Create the async engine.

    SQLite has no row locks, so every transaction starts with BEGIN IMMEDIATE:
    writers queue on the database lock for at most SQLITE_BUSY_TIMEOUT_SECONDS.
    """
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=echo,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(url, echo=echo, future=True)


# Create Async Engine
engine = create_engine()

async_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db(bind: AsyncEngine = engine):
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def serializable_transaction(session: AsyncSession):
    """
    Run a block as one all-or-nothing unit at CONVERSION_ISOLATION_LEVEL.

    Any implicit read transaction already open on the session is committed
    first so the new transaction starts clean. Commits when the block exits
    normally; rolls back everything and re-raises otherwise.
    """
    if session.in_transaction():
        await session.commit()

    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        await session.connection(
            execution_options={"isolation_level": settings.CONVERSION_ISOLATION_LEVEL}
        )
        await session.execute(text(f"SET LOCAL lock_timeout = {int(settings.PG_LOCK_TIMEOUT_MS)}"))
    else:
        await session.connection()

    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
