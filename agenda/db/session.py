# agenda/db/session.py

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from agenda.core.config import settings


def make_engine(url: str) -> AsyncEngine:
    """Build an async engine; in-memory SQLite gets one shared connection."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_async_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(url, pool_pre_ping=True)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,  # keep objects usable after commit
        class_=AsyncSession,
    )


# 1) Engine: one per app
engine = make_engine(settings.async_db_uri)

# 2) Session factory: short-lived sessions per request / per refresh
AsyncSessionLocal = make_session_factory(engine)

# 3) Declarative Base: all models inherit from this
class Base(DeclarativeBase):
    pass

# 4) FastAPI dependency: yields a session and closes it safely
async def get_session():
    async with AsyncSessionLocal() as session:
        yield session
