"""Database configuration and session management.

Provides the async SQLAlchemy engine, session factory and declarative base.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for models."""


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine.

    Args:
        database_url: SQLAlchemy URL with an async driver.
        echo: Log emitted SQL.

    Returns:
        Configured AsyncEngine.
    """
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine.

    Args:
        engine: Async engine.

    Returns:
        Session factory producing AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
