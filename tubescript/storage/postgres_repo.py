"""Postgres-backed collection repository using SQLAlchemy."""

from __future__ import annotations

import logging

from asyncpg import exceptions as pg_exceptions
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubescript.core.database import get_session_factory
from tubescript.storage.collections_repo import AuthRequiredError, CollectionsRepository, Record
from tubescript.storage.models import Collection

logger = logging.getLogger(__name__)

_AUTH_ERRORS = (
  pg_exceptions.InvalidAuthorizationSpecificationError,
  pg_exceptions.InsufficientPrivilegeError,
)


def _is_auth_failure(exc: DBAPIError) -> bool:
  """Return True when the database refused access rather than failing otherwise."""
  candidates = [exc.orig, getattr(exc.orig, "__cause__", None)]
  for candidate in candidates:
    if isinstance(candidate, _AUTH_ERRORS):
      return True
  message = str(exc).lower()
  return "permission denied" in message or "password authentication failed" in message


class PostgresCollectionsRepository(CollectionsRepository):
  """Persist collections as one JSON row per (owner, name)."""

  def __init__(self, owner_id: str | None = None, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._owner_id = owner_id
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  @property
  def owner_id(self) -> str | None:
    return self._owner_id

  def set_owner(self, owner_id: str | None) -> None:
    """Attach or clear the session owner; without one every call is refused."""
    self._owner_id = owner_id

  def _require_owner(self) -> str:
    if not self._owner_id:
      raise AuthRequiredError("Remote storage requires a signed-in owner.")
    return self._owner_id

  async def load(self, name: str) -> list[Record]:
    owner_id = self._require_owner()
    try:
      async with self._session_factory() as session:
        row = await session.get(Collection, (owner_id, name))
    except DBAPIError as exc:
      if _is_auth_failure(exc):
        raise AuthRequiredError(f"Remote storage refused access to '{name}'.") from exc
      raise
    if row is None or not isinstance(row.data, list):
      return []
    return list(row.data)

  async def save(self, name: str, records: list[Record]) -> None:
    owner_id = self._require_owner()
    try:
      async with self._session_factory() as session:
        row = await session.get(Collection, (owner_id, name))
        if row is None:
          session.add(Collection(owner_id=owner_id, name=name, data=records))
        else:
          row.data = records
        await session.commit()
    except DBAPIError as exc:
      if _is_auth_failure(exc):
        raise AuthRequiredError(f"Remote storage refused writes to '{name}'.") from exc
      raise
    logger.debug("Saved %s records to remote collection %s", len(records), name)
