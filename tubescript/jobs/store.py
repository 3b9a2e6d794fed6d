"""In-memory job collection with whole-collection persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from tubescript.jobs.models import Job
from tubescript.jobs.notices import NoticeBoard
from tubescript.storage.collections_repo import PROJECTS_COLLECTION, CollectionsRepository

logger = logging.getLogger(__name__)

JobUpdater = Callable[[Job], Job]
JobPredicate = Callable[[Job], bool]


class JobNotFoundError(KeyError):
  """Raised when a job id is not present in the store."""


class JobStore:
  """Owns the job collection.

  Every mutation swaps in new ``Job`` snapshots and then writes the whole
  ``projects`` collection. Writes are serialised by a lock so they reach the
  repository in the order the mutations happened. Persistence failures are
  logged and turned into notices; they never interrupt generation.
  """

  def __init__(self, repository: CollectionsRepository | None = None, *, notices: NoticeBoard | None = None) -> None:
    self._jobs: dict[int, Job] = {}
    self._repository = repository
    self._notices = notices
    self._persist_lock = asyncio.Lock()

  def get(self, job_id: int) -> Job:
    try:
      return self._jobs[job_id]
    except KeyError as exc:
      raise JobNotFoundError(job_id) from exc

  def find(self, job_id: int) -> Job | None:
    return self._jobs.get(job_id)

  def list(self, predicate: JobPredicate | None = None) -> list[Job]:
    jobs = list(self._jobs.values())
    if predicate is None:
      return jobs
    return [job for job in jobs if predicate(job)]

  def batch(self, batch_id: str) -> list[Job]:
    return sorted(self.list(lambda job: job.batch_id == batch_id), key=lambda job: job.id)

  def siblings_of(self, job: Job) -> list[Job]:
    """Jobs that share this job's structure slot, sorted by id (the job itself included)."""
    key = job.group_key()
    return sorted(self.list(lambda other: other.group_key() == key), key=lambda other: other.id)

  async def add_many(self, jobs: Iterable[Job]) -> list[Job]:
    added = list(jobs)
    for job in added:
      if job.id in self._jobs:
        raise ValueError(f"Job {job.id} already exists.")
    for job in added:
      self._jobs[job.id] = job
    await self._persist()
    return added

  async def replace(self, job_id: int, updater: JobUpdater) -> Job:
    """Apply an updater to one job and persist the collection."""
    current = self.get(job_id)
    updated = updater(current)
    if updated.id != job_id:
      raise ValueError("Updaters must not change the job id.")
    self._jobs[job_id] = updated
    await self._persist()
    return updated

  async def replace_all(self, predicate: JobPredicate, updater: JobUpdater) -> list[Job]:
    """Apply an updater to every matching job in one step, then persist once."""
    changed: list[Job] = []
    for job_id, job in list(self._jobs.items()):
      if predicate(job):
        updated = updater(job)
        self._jobs[job_id] = updated
        changed.append(updated)
    if changed:
      await self._persist()
    return changed

  async def set_completed(self, job_id: int, completed: bool = True) -> Job:
    return await self.replace(job_id, lambda job: job.model_copy(update={"completed": completed}))

  async def remove(self, job_id: int) -> bool:
    if self._jobs.pop(job_id, None) is None:
      return False
    await self._persist()
    return True

  async def load(self) -> list[Job]:
    """Replace the in-memory snapshot with the repository contents."""
    if self._repository is None:
      return self.list()
    records = await self._repository.load(PROJECTS_COLLECTION)
    jobs: dict[int, Job] = {}
    for record in records:
      try:
        job = Job.model_validate(record)
      except ValueError as exc:
        logger.warning("Skipping unreadable project record: %s", exc)
        continue
      jobs[job.id] = job
    self._jobs = jobs
    logger.info("Loaded %s jobs", len(jobs))
    return self.list()

  async def _persist(self) -> None:
    if self._repository is None:
      return
    async with self._persist_lock:
      records = [job.to_record() for job in self._jobs.values()]
      try:
        await self._repository.save(PROJECTS_COLLECTION, records)
      except Exception as exc:  # noqa: BLE001
        logger.error("Failed to persist %s jobs: %s", len(records), exc, exc_info=True)
        if self._notices is not None:
          self._notices.error(f"Saving projects failed: {exc}")
