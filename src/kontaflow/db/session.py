"""Engine, session factory and the per-request transaction for KontaFlow.

``get_db`` is the only place that commits or rolls back. Repositories flush,
services orchestrate, and a request either persists all of its writes or none.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from kontaflow.config import settings

# Deterministic constraint names keep Alembic revisions stable across databases
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base shared by every table in models.py and by Alembic."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout,
    pool_recycle=settings.db_pool_recycle,
    pool_pre_ping=settings.db_pool_pre_ping,
    echo=settings.db_echo,
    # asyncpg aborts any statement running longer than this many seconds
    connect_args={"command_timeout": settings.db_statement_timeout},
)

# Loaded groups are serialized after the commit; expiring them would force lazy IO
async_session = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request session, then commit, or roll back if the request failed.

    Creating a group writes four rows (group, ADMIN membership, accounting
    configuration, chart of accounts); this boundary makes them one unit.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def shutdown() -> None:
    """Dispose of the connection pool. Runs from the app lifespan."""
    await engine.dispose()
