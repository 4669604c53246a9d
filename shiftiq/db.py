from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import DeclarativeBase
from .config import settings

# Lazy initialization - engine is created on first use
_engine = None
_SessionLocal = None

def make_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url):
        # In-memory SQLite must share a single connection across sessions
        from sqlalchemy.pool import StaticPool
        return create_async_engine(url, echo=False, poolclass=StaticPool,
                                   connect_args={"check_same_thread": False})
    return create_async_engine(url, echo=False, pool_pre_ping=True)

def get_engine() -> AsyncEngine:
    """Return the process engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = make_engine(settings.database_url)
    return _engine

def get_session_local():
    """Return the session factory bound to the process engine."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _SessionLocal

async def create_all(engine: AsyncEngine) -> None:
    from . import models  # noqa: F401  registers tables on Base.metadata
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

class Base(DeclarativeBase):
    pass
