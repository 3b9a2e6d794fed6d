"""Storage interfaces for whole-collection persistence."""

from __future__ import annotations

from typing import Any, Protocol

PROJECTS_COLLECTION = "projects"
NICHES_COLLECTION = "niches"

Record = dict[str, Any]


class AuthRequiredError(PermissionError):
  """The remote backend refused the operation because no valid session exists."""


class CollectionsRepository(Protocol):
  """Repository contract for named collections of JSON records."""

  async def load(self, name: str) -> list[Record]:
    """Return every record stored under the collection name."""

  async def save(self, name: str, records: list[Record]) -> None:
    """Replace the collection with the given records."""
