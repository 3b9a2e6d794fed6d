"""Apply free-text change requests to an existing structure."""

from __future__ import annotations

import logging
from collections.abc import Callable

from tubescript.ai.agents.structure_refiner import StructureRefinerAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import JobContext, StructureRefineRequest
from tubescript.ai.utils.cost import REFINE_CALL_COST, CostMeter
from tubescript.jobs.models import Job, JobBusyError, StructureSection
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore

logger = logging.getLogger(__name__)

RefinerFactory = Callable[[str | None], StructureRefinerAgent]


class RefinementApplier:
  """Replace a job's structure wholesale with the provider's rewritten version.

  ``targets`` lets the caller apply the result to siblings that share the
  structure; by default only the job itself is updated.
  """

  def __init__(self, *, store: JobStore, refiner_for: RefinerFactory, cost: CostMeter, notices: NoticeBoard) -> None:
    self._store = store
    self._refiner_for = refiner_for
    self._cost = cost
    self._notices = notices

  async def refine(self, job_id: int, instructions: str, *, model: str | None = None, targets: list[int] | None = None) -> list[StructureSection]:
    job = self._store.get(job_id)
    if not job.structure:
      raise ValueError(f"Job {job_id} has no structure to refine.")
    if not instructions.strip():
      raise ValueError("Refinement instructions must not be empty.")

    target_ids = set(targets or [job_id])
    target_ids.add(job_id)
    busy = sorted(target_id for target_id in target_ids if self._store.get(target_id).script_generating)
    if busy:
      self._notices.warning("The structure cannot change while a script is being written.", job_id=job_id)
      raise JobBusyError(f"Jobs {busy} are generating scripts; their structure cannot be refined now.")

    resolved_model = model or job.config.model
    refiner = self._refiner_for(resolved_model)
    ctx = JobContext(job_id=job.id, title=job.title, niche_id=job.config.niche_id, model=resolved_model)

    self._cost.add("refine", REFINE_CALL_COST, job_id=job_id)
    await self._store.replace_all(lambda other: other.id in target_ids, lambda other: other.model_copy(update={"structure_generating": True}))

    refined: list[StructureSection] | None = None
    try:
      refined = await refiner.run(StructureRefineRequest(title=job.title, structure=job.structure, instructions=instructions), ctx)
    except Exception as exc:
      logger.error("StructureRefiner failed for job %s (model=%s): %s", job_id, refiner.model_name, exc)
      self._notices.error(f"Could not update the structure: {describe_error(exc)}", job_id=job_id)
      raise
    finally:
      await self._store.replace_all(lambda other: other.id in target_ids, lambda other: self._finish(other, refined))

    logger.info("Refined structure of job %s into %s sections (targets=%s)", job_id, len(refined), sorted(target_ids))
    return refined

  @staticmethod
  def _finish(job: Job, refined: list[StructureSection] | None) -> Job:
    if refined is None:
      return job.model_copy(update={"structure_generating": False})
    # Script sections beyond the refined structure are dropped.
    return job.model_copy(
      update={
        "structure_generating": False,
        "structure": [section.model_copy() for section in refined],
        "script_parts": job.script_parts[: len(refined)],
      }
    )
