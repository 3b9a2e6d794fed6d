"""Split a written script section into illustrated scenes."""

from __future__ import annotations

import logging
from collections.abc import Callable

from tubescript.ai.agents.prompts import default_scene_style
from tubescript.ai.agents.scene_splitter import SceneSplitterAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import JobContext, SceneSplitRequest
from tubescript.ai.utils.cost import SCENE_SPLIT_COST, CostMeter
from tubescript.jobs.models import Job, JobBusyError, Scene
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore

logger = logging.getLogger(__name__)


class ScenePlanner:
  """Attach scene breakdowns to script sections.

  The section text is only read; a successful split replaces the section's
  ``scenes`` and nothing else.
  """

  def __init__(self, *, store: JobStore, splitter: Callable[[], SceneSplitterAgent], cost: CostMeter, notices: NoticeBoard) -> None:
    self._store = store
    self._splitter = splitter
    self._cost = cost
    self._notices = notices

  async def split(self, job_id: int, index: int, *, min_chars: int = 100, max_chars: int = 250, instructions: str = "", style: str | None = None) -> list[Scene]:
    job = self._store.get(job_id)
    if index < 0 or index >= len(job.script_parts):
      raise IndexError(f"Job {job_id} has no script section {index}.")
    section = job.script_parts[index]
    if section.is_generating:
      raise JobBusyError(f"Section {index} of job {job_id} is still being written.")
    if not section.content.strip():
      raise ValueError(f"Section {index + 1} of job {job_id} has no script text to split.")

    request = SceneSplitRequest(
      source_text=section.content,
      min_chars=min_chars,
      max_chars=max_chars,
      style=style or default_scene_style(),
      instructions=instructions,
    )
    agent = self._splitter()
    ctx = JobContext(job_id=job.id, title=job.title, niche_id=job.config.niche_id)

    self._cost.add("scene_split", SCENE_SPLIT_COST, job_id=job_id)
    try:
      scenes = await agent.run(request, ctx, section_index=index)
    except Exception as exc:
      logger.error("SceneSplitter failed for job %s section %s (model=%s): %s", job_id, index, agent.model_name, exc)
      self._notices.error(f"Could not split section {index + 1} into scenes: {describe_error(exc)}", job_id=job_id, section_index=index)
      raise

    await self._store.replace(job_id, lambda current: self._attach(current, index, section.content, scenes))
    self._notices.info(f"Section {index + 1} split into {len(scenes)} scenes.", job_id=job_id, section_index=index)
    return scenes

  @staticmethod
  def _attach(job: Job, index: int, source_text: str, scenes: list[Scene]) -> Job:
    if index >= len(job.script_parts) or job.script_parts[index].content != source_text:
      # The section was rewritten or removed while the split was running.
      logger.warning("Discarding scenes for job %s section %s: the text changed", job.id, index)
      return job
    parts = list(job.script_parts)
    parts[index] = parts[index].model_copy(update={"scenes": list(scenes)})
    return job.model_copy(update={"script_parts": parts})
