from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from tubescript.config import get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def database_url() -> str | None:
  """Build the SQLAlchemy database URL from the configured DSN."""
  settings = get_database_settings()
  url = settings.pg_dsn
  if url and url.startswith("postgresql://"):
    url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

  return url


def get_db_engine() -> AsyncEngine | None:
  global engine
  settings = get_database_settings()
  url = database_url()
  if engine is None and url:
    connect_args = {"timeout": settings.pg_connect_timeout} if url.startswith("postgresql+asyncpg://") else {}
    engine = create_async_engine(url, echo=settings.debug, future=True, connect_args=connect_args)
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  """Return the shared session factory, or None when no database is configured."""
  global SessionLocal
  if SessionLocal is None:
    db_engine = get_db_engine()
    if db_engine:
      SessionLocal = async_sessionmaker(bind=db_engine, expire_on_commit=False, class_=AsyncSession)
  return SessionLocal


async def create_tables() -> None:
  """Create the collection tables when they do not exist yet."""
  db_engine = get_db_engine()
  if db_engine is None:
    raise RuntimeError("Database connection is not configured (TUBESCRIPT_PG_DSN is missing).")

  # Import models so they register on the metadata.
  from tubescript.storage import models  # noqa: F401

  async with db_engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
