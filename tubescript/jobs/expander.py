"""Turn one topic request into concrete job records."""

from __future__ import annotations

import logging

from tubescript.jobs.models import Job, JobConfig, TopicRequest
from tubescript.utils.ids import DEFAULT_GENERATOR, JobIdGenerator
from tubescript.utils.variant_tag import encode_title

logger = logging.getLogger(__name__)


def expand_batch(request: TopicRequest, *, id_generator: JobIdGenerator | None = None, batch_id: str | None = None) -> list[Job]:
  """Create one draft job per (structure variant, script variant) pair.

  Jobs are ordered structure-major (1-1, 1-2, 2-1, ...) and share one batch id.
  ``structure_generating`` mirrors ``request.start_generation``.
  """
  ids = id_generator or DEFAULT_GENERATOR
  resolved_batch_id = batch_id or ids.batch_id()
  config = JobConfig(
    niche_id=request.niche_id,
    duration_minutes=request.duration_minutes,
    structure_variants=request.structure_variants,
    script_variants=request.script_variants,
    release_date=request.release_date,
    model=request.model,
  )

  jobs: list[Job] = []
  for struct_idx in range(1, request.structure_variants + 1):
    for script_idx in range(1, request.script_variants + 1):
      title = encode_title(request.title, struct_idx, script_idx, request.structure_variants, request.script_variants)
      jobs.append(
        Job(
          id=ids.next_id(),
          batch_id=resolved_batch_id,
          title=title,
          config=config.model_copy(),
          structure_generating=request.start_generation,
          structure_instructions=request.instructions,
        )
      )

  logger.info("Expanded '%s' into %s jobs (batch=%s)", request.title, len(jobs), resolved_batch_id)
  return jobs
