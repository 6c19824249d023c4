"""
Database configuration and session management
"""
import logging
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()

engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker] = None


def _build_engine(url: str) -> AsyncEngine:
    # SQLite connections are tied to the event loop that opened them; don't pool them
    if url.startswith("sqlite"):
        return create_async_engine(url, future=True, poolclass=NullPool)
    return create_async_engine(url, future=True, pool_pre_ping=True, pool_size=10, max_overflow=20)


def configure_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """(Re)bind the module engine and session factory to a database URL"""
    global engine, SessionLocal
    engine = _build_engine(url)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    return engine


configure_engine()


async def init_db():
    """Initialize database tables"""
    # Make sure all models are imported so Base.metadata is populated
    from .models import apikey, organization, site  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request"""
    async with SessionLocal() as session:
        yield session
