"""Database engine, session factory and document store selection."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tripsync.app.config import Settings, get_settings
from tripsync.app.db.documents import DocumentStore
from tripsync.app.db.inmemory import InMemoryDocumentStore
from tripsync.app.db.models import Base
from tripsync.app.db.sql_store import SqlDocumentStore


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    database_url = settings.database_url

    if not database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string "
            "when store_backend is 'sql'."
        )

    # Convert postgresql:// to postgresql+asyncpg://
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return create_async_engine(database_url, pool_pre_ping=True, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: Async SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the documents table without running migrations (dev/test)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Process-wide singletons
_async_engine: AsyncEngine | None = None
_store: DocumentStore | None = None


def get_async_engine() -> AsyncEngine:
    """Get global async engine instance."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_async_engine_from_settings(get_settings())
    return _async_engine


def build_document_store(settings: Settings) -> DocumentStore:
    """Build the store selected by settings.store_backend."""
    if settings.store_backend == "sql":
        return SqlDocumentStore(create_session_factory(get_async_engine()))
    return InMemoryDocumentStore()


def get_document_store() -> DocumentStore:
    """FastAPI dependency for the process-wide document store."""
    global _store
    if _store is None:
        _store = build_document_store(get_settings())
    return _store
