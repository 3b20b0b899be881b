"""
Database engine and session management with SQLAlchemy async.

The checkpoint database defaults to a local SQLite file (aiosqlite driver);
any async SQLAlchemy URL works, e.g. postgresql+asyncpg://...
"""

from pathlib import Path
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database"""
    url = make_url(database_url)
    if not url.get_backend_name().startswith("sqlite"):
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def create_engine(database_url: str = None) -> AsyncEngine:
    """Create an async engine for the checkpoint database"""
    database_url = database_url or settings.DATABASE_URL
    ensure_sqlite_directory(database_url)
    return create_async_engine(
        database_url,
        echo=False,
        poolclass=NullPool,  # Connections never outlive a session
        future=True
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to the given engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )
