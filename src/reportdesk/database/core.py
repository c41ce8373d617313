"""
Database core functionality for async SQLAlchemy
"""

import re

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from ..config import get_settings


def normalize_database_url(url: str) -> str:
    """Convert a plain database URL to its async driver variant"""
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite:///"):
        url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

    # asyncpg handles SSL through connect_args, not the query string
    if "?sslmode=" in url or "&sslmode=" in url:
        url = re.sub(r'[?&]sslmode=\w+', '', url)
    return url


def build_engine(url: str, echo: bool = False):
    """Create the async engine, pooling only for server databases"""
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=20,
        max_overflow=40,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )


settings = get_settings()

engine = build_engine(settings.database_url, echo=settings.database_echo)

# Create async SessionLocal class
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Create Base class for models
Base = declarative_base()


async def get_db():
    """Async dependency to get database session"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models():
    """Create all tables that do not exist yet"""
    from .. import models  # noqa: F401 - registers mappers on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
