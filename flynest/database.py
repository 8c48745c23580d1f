from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.orm import declarative_base

from flynest.config import settings

Base = declarative_base()

def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given database URL"""
    return create_async_engine(url, echo=echo, pool_pre_ping=not url.startswith("sqlite"))

def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores FOREIGN KEY constraints unless asked per connection
    module = type(dbapi_connection).__module__
    if "sqlite" in module:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = build_session_factory(engine)

if settings.admin_database_url == settings.DATABASE_URL:
    admin_engine = engine
else:
    admin_engine = build_engine(settings.admin_database_url, echo=settings.DATABASE_ECHO)
AdminSessionLocal = build_session_factory(admin_engine)

async def init_models(bind: AsyncEngine = engine) -> None:
    """Create all tables (local runs and tests)"""
    from flynest import models  # noqa: F401  registers tables on Base.metadata

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
