"""JSON-file repository used as the local cache and offline store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from tubescript.storage.collections_repo import CollectionsRepository, Record

logger = logging.getLogger(__name__)


class LocalCollectionsRepository(CollectionsRepository):
  """Persist each collection to ``<data_dir>/<name>.json``."""

  def __init__(self, data_dir: str | Path) -> None:
    self._data_dir = Path(data_dir).expanduser()

  def _path(self, name: str) -> Path:
    if not name or "/" in name or "\\" in name or name.startswith("."):
      raise ValueError(f"Invalid collection name '{name}'.")
    return self._data_dir / f"{name}.json"

  def _read(self, name: str) -> list[Record]:
    path = self._path(name)
    if not path.is_file():
      return []
    try:
      payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
      logger.warning("Failed to read local collection %s from %s: %s", name, path, exc)
      return []
    if not isinstance(payload, list):
      logger.warning("Local collection %s is not a list; ignoring it", name)
      return []
    return [record for record in payload if isinstance(record, dict)]

  def _write(self, name: str, records: list[Record]) -> None:
    path = self._path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    # Write to a sibling temp file and swap it in so readers never see half a file.
    fd, tmp_name = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=path.parent)
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as handle:
        json.dump(records, handle, ensure_ascii=False, indent=2)
      os.replace(tmp_name, path)
    except BaseException:
      Path(tmp_name).unlink(missing_ok=True)
      raise

  async def load(self, name: str) -> list[Record]:
    return await asyncio.to_thread(self._read, name)

  async def save(self, name: str, records: list[Record]) -> None:
    await asyncio.to_thread(self._write, name, records)
