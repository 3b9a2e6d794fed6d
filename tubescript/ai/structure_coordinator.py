"""Chunked structure generation fanned out to every job of a structure group."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field

from tubescript.ai.agents.structure_builder import StructureBuilderAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import JobContext, StructureChunkRequest
from tubescript.ai.utils.cost import STRUCTURE_CALL_COST, CostMeter
from tubescript.jobs.models import Job, JobBusyError, StructureSection
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore
from tubescript.utils.instruction_parsing import parse_chunk_size, resolve_section_count

logger = logging.getLogger(__name__)

StructureAgentFactory = Callable[[str | None], StructureBuilderAgent]


@dataclass
class StructureGroupOutcome:
  """Result of one structure-group generation."""

  key: Hashable
  job_ids: list[int]
  planned_sections: int
  sections: list[StructureSection] = field(default_factory=list)
  error: BaseException | None = None

  @property
  def failed(self) -> bool:
    return not self.sections

  @property
  def partial(self) -> bool:
    return bool(self.sections) and len(self.sections) < self.planned_sections


def chunk_bounds(total_sections: int, chunk_size: int) -> list[tuple[int, int]]:
  """Return 1-based inclusive (start, end) pairs covering every section."""
  if chunk_size <= 0:
    raise ValueError("chunk_size must be positive")
  return [(start, min(start + chunk_size - 1, total_sections)) for start in range(1, total_sections + 1, chunk_size)]


def group_jobs(jobs: Iterable[Job]) -> dict[Hashable, list[Job]]:
  """Group jobs by structure slot; each group is sorted by id, groups keep first-seen order."""
  groups: dict[Hashable, list[Job]] = {}
  for job in jobs:
    groups.setdefault(job.group_key(), []).append(job)
  return {key: sorted(members, key=lambda job: job.id) for key, members in groups.items()}


class StructureCoordinator:
  """Generate one structure per group and apply it to every member at once."""

  def __init__(self, *, store: JobStore, agent_for: StructureAgentFactory, catalog: NicheCatalog, cost: CostMeter, notices: NoticeBoard) -> None:
    self._store = store
    self._agent_for = agent_for
    self._catalog = catalog
    self._cost = cost
    self._notices = notices

  async def generate_batch(self, jobs: Iterable[Job], *, instructions: str | None = None, model: str | None = None) -> list[StructureGroupOutcome]:
    """Run every structure group of the given jobs concurrently."""
    groups = group_jobs(jobs)
    results = await asyncio.gather(
      *(self.generate_group(members, instructions=instructions, model=model) for members in groups.values()),
      return_exceptions=True,
    )

    outcomes: list[StructureGroupOutcome] = []
    for (key, members), result in zip(groups.items(), results):
      if isinstance(result, BaseException):
        if not isinstance(result, Exception):
          raise result
        planned = resolve_section_count(instructions, members[0].config.duration_minutes)
        outcomes.append(StructureGroupOutcome(key=key, job_ids=[job.id for job in members], planned_sections=planned, error=result))
      else:
        outcomes.append(result)
    return outcomes

  async def generate_for_job(self, job_id: int, *, instructions: str | None = None, model: str | None = None) -> StructureGroupOutcome:
    """Generate the structure of one job and every sibling sharing its structure slot."""
    job = self._store.get(job_id)
    return await self.generate_group(self._store.siblings_of(job), instructions=instructions, model=model)

  async def generate_group(self, group: list[Job], *, instructions: str | None = None, model: str | None = None) -> StructureGroupOutcome:
    """Generate a structure in chunks from the group's representative.

    Raises the chunk error when nothing was produced; a failure after at least
    one chunk keeps the sections produced so far.
    """
    if not group:
      raise ValueError("Structure group must not be empty.")

    representative = min(group, key=lambda job: job.id)
    job_ids = [job.id for job in group]
    member_ids = set(job_ids)
    busy = [job_id for job_id in job_ids if self._store.get(job_id).script_generating]
    if busy:
      self._notices.warning(f"Structure for '{representative.title}' was not regenerated: a script is being written.", job_id=representative.id)
      raise JobBusyError(f"Jobs {busy} are generating scripts; their structure cannot be replaced now.")

    niche = self._catalog.resolve(representative.config.niche_id)
    total_sections = resolve_section_count(instructions, representative.config.duration_minutes)
    chunk_size = parse_chunk_size(niche.workflow_description)
    resolved_model = model or representative.config.model
    agent = self._agent_for(resolved_model)
    ctx = JobContext(job_id=representative.id, title=representative.title, niche_id=niche.id, model=resolved_model)

    # Siblings share the call, so the group is charged once.
    self._cost.add("structure", STRUCTURE_CALL_COST, job_id=representative.id)
    await self._store.replace_all(
      lambda job: job.id in member_ids,
      lambda job: job.model_copy(update={"structure_generating": True}),
    )
    logger.info("Generating %s sections in chunks of %s for group %s (jobs=%s)", total_sections, chunk_size, representative.group_key(), job_ids)

    produced: list[StructureSection] = []
    error: Exception | None = None
    try:
      for start, end in chunk_bounds(total_sections, chunk_size):
        request = StructureChunkRequest(
          title=representative.variant.base_title,
          duration_minutes=representative.config.duration_minutes,
          template=niche.structure_prompt or "",
          workflow_description=niche.workflow_description,
          instructions=instructions,
          total_sections=total_sections,
          start=start,
          end=end,
          previous=list(produced),
        )
        try:
          sections = await agent.run(request, ctx)
        except Exception as exc:  # noqa: BLE001
          error = exc
          logger.error("StructureBuilder failed on parts %s-%s for job %s (model=%s): %s", start, end, representative.id, agent.model_name, exc)
          break
        produced.extend(sections)
    finally:
      await self._apply(member_ids, produced, instructions)

    outcome = StructureGroupOutcome(key=representative.group_key(), job_ids=job_ids, planned_sections=total_sections, sections=produced, error=error)
    if error is not None:
      if not produced:
        self._notices.error(f"Structure generation failed for '{representative.title}': {describe_error(error)}", job_id=representative.id)
        raise error
      self._notices.warning(
        f"Structure for '{representative.title}' stopped at {len(produced)} of {total_sections} sections: {describe_error(error)}",
        job_id=representative.id,
      )
    return outcome

  async def _apply(self, member_ids: set[int], produced: list[StructureSection], instructions: str | None) -> None:
    """Write the structure (when any) and clear the loading flag on every member in one step.

    A new structure clears the script written against the old one.
    """

    def _update(job: Job) -> Job:
      update: dict[str, object] = {"structure_generating": False}
      if produced:
        update["structure"] = [section.model_copy() for section in produced]
        update["structure_instructions"] = instructions
        update["script_parts"] = []
      return job.model_copy(update=update)

    await self._store.replace_all(lambda job: job.id in member_ids, _update)
