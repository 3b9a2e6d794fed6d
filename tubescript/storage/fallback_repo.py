"""Remote repository with a local cache that takes over when the remote refuses access."""

from __future__ import annotations

import logging

from tubescript.config import Settings
from tubescript.jobs.notices import NoticeBoard
from tubescript.storage.collections_repo import AuthRequiredError, CollectionsRepository, Record
from tubescript.storage.local_repo import LocalCollectionsRepository

logger = logging.getLogger(__name__)


class FallbackCollectionsRepository(CollectionsRepository):
  """Local-first persistence mirrored to an optional remote backend.

  Saves always land in the local cache before the remote write. Reads prefer
  remote data and refresh the cache with it; an empty or failing remote falls
  back to the cache. ``AuthRequiredError`` switches the repository to
  local-only mode until ``enable_remote`` is called.
  """

  def __init__(self, local: CollectionsRepository, remote: CollectionsRepository | None = None, *, notices: NoticeBoard | None = None) -> None:
    self._local = local
    self._remote = remote
    self._remote_enabled = remote is not None
    self._notices = notices

  @property
  def remote_enabled(self) -> bool:
    return self._remote is not None and self._remote_enabled

  def enable_remote(self) -> None:
    if self._remote is None:
      raise RuntimeError("No remote repository configured.")
    self._remote_enabled = True

  def disable_remote(self) -> None:
    self._remote_enabled = False

  def _notify(self, message: str) -> None:
    if self._notices is not None:
      self._notices.warning(message)
    else:
      logger.warning(message)

  def _switch_to_local(self, exc: AuthRequiredError) -> None:
    self._remote_enabled = False
    self._notify(f"Remote storage unavailable ({exc}); continuing with local storage only.")

  async def load(self, name: str) -> list[Record]:
    if not self.remote_enabled:
      return await self._local.load(name)

    try:
      remote_records = await self._remote.load(name)  # type: ignore[union-attr]
    except AuthRequiredError as exc:
      self._switch_to_local(exc)
      return await self._local.load(name)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Remote load of %s failed, reading local cache: %s", name, exc)
      self._notify(f"Could not load '{name}' from remote storage; showing the local copy.")
      return await self._local.load(name)

    if not remote_records:
      return await self._local.load(name)

    await self._local.save(name, remote_records)
    return remote_records

  async def save(self, name: str, records: list[Record]) -> None:
    await self._local.save(name, records)
    if not self.remote_enabled:
      return

    try:
      await self._remote.save(name, records)  # type: ignore[union-attr]
    except AuthRequiredError as exc:
      self._switch_to_local(exc)
    except Exception as exc:  # noqa: BLE001
      logger.error("Remote save of %s failed; data kept locally: %s", name, exc)
      self._notify(f"Could not save '{name}' to remote storage; it is kept locally.")


def build_repository(settings: Settings, *, notices: NoticeBoard | None = None) -> FallbackCollectionsRepository:
  """Local cache in the data dir, mirrored to Postgres when a DSN is configured."""
  local = LocalCollectionsRepository(settings.data_dir)
  remote: CollectionsRepository | None = None
  if settings.pg_dsn:
    from tubescript.storage.postgres_repo import PostgresCollectionsRepository

    remote = PostgresCollectionsRepository(owner_id=settings.storage_owner_id)
  return FallbackCollectionsRepository(local, remote, notices=notices)
