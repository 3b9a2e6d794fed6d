"""Sequential per-section script generation and targeted regeneration."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from tubescript.ai.agents.script_writer import ScriptRewriterAgent, ScriptWriterAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import JobContext, LengthBounds, ScriptDraft, ScriptRewriteRequest, ScriptSectionRequest
from tubescript.ai.utils.cost import SCRIPT_SECTION_COST, CostMeter
from tubescript.jobs.models import Job, JobBusyError, ScriptSection, placeholder_section
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore

logger = logging.getLogger(__name__)

WriterFactory = Callable[[str | None], ScriptWriterAgent]
RewriterFactory = Callable[[str | None], ScriptRewriterAgent]
SectionCall = Callable[[Job, int], Awaitable[ScriptDraft]]


@dataclass
class ScriptOutcome:
  """Per-section results of one script run."""

  job_id: int
  succeeded: list[int] = field(default_factory=list)
  failed: dict[int, str] = field(default_factory=dict)
  error: BaseException | None = None

  @property
  def ok(self) -> bool:
    return not self.failed and self.error is None


def _replace_section(job: Job, index: int, **changes: object) -> Job:
  parts = list(job.script_parts)
  parts[index] = parts[index].model_copy(update=changes)
  return job.model_copy(update={"script_parts": parts})


class ScriptSequencer:
  """Generate script sections one at a time, in index order, persisting after each step."""

  def __init__(
    self,
    *,
    store: JobStore,
    writer_for: WriterFactory,
    rewriter_for: RewriterFactory,
    catalog: NicheCatalog,
    cost: CostMeter,
    notices: NoticeBoard,
    bounds: LengthBounds | None = None,
  ) -> None:
    self._store = store
    self._writer_for = writer_for
    self._rewriter_for = rewriter_for
    self._catalog = catalog
    self._cost = cost
    self._notices = notices
    self._bounds = bounds or LengthBounds()

  def _context(self, job: Job, model: str | None) -> JobContext:
    return JobContext(job_id=job.id, title=job.title, niche_id=job.config.niche_id, model=model)

  async def generate(self, job_id: int, *, instructions: str | None = None, model: str | None = None) -> ScriptOutcome:
    """Write a first draft for every structure section of one job."""
    job = self._store.get(job_id)
    if not job.structure:
      raise ValueError(f"Job {job_id} has no structure to write a script for.")
    if job.script_generating:
      raise JobBusyError(f"Job {job_id} is already generating its script.")

    resolved_model = model or job.config.model
    writer = self._writer_for(resolved_model)
    template = self._catalog.resolve(job.config.niche_id).script_prompt or ""
    ctx = self._context(job, resolved_model)

    placeholders = [placeholder_section(job.id, index, section) for index, section in enumerate(job.structure)]
    await self._store.replace(
      job_id,
      lambda current: current.model_copy(update={"script_generating": True, "script_parts": placeholders, "script_instructions": instructions}),
    )

    async def _write(current: Job, index: int) -> ScriptDraft:
      request = ScriptSectionRequest(
        title=current.title,
        template=template,
        structure=current.structure,
        index=index,
        instructions=instructions,
        bounds=self._bounds,
      )
      return await writer.run(request, ctx)

    return await self._run_sections(job_id, list(range(len(placeholders))), _write, keep_content_on_failure=False)

  async def regenerate_all(self, job_id: int, instructions: str, *, model: str | None = None) -> ScriptOutcome:
    """Rewrite every existing section in order with the same failure isolation as a first draft."""
    job = self._store.get(job_id)
    if not job.script_parts:
      raise ValueError(f"Job {job_id} has no script sections to regenerate.")
    if job.script_generating:
      raise JobBusyError(f"Job {job_id} is already generating its script.")

    resolved_model = model or job.config.model
    rewriter = self._rewriter_for(resolved_model)
    ctx = self._context(job, resolved_model)
    await self._store.replace(job_id, lambda current: current.model_copy(update={"script_generating": True}))

    async def _rewrite(current: Job, index: int) -> ScriptDraft:
      return await rewriter.run(self._rewrite_request(current, index, instructions), ctx)

    return await self._run_sections(job_id, list(range(len(job.script_parts))), _rewrite, keep_content_on_failure=True)

  async def regenerate_section(self, job_id: int, index: int, instructions: str, *, model: str | None = None) -> ScriptOutcome:
    """Rewrite exactly one section; every other section and job stays untouched."""
    job = self._store.get(job_id)
    if index < 0 or index >= len(job.script_parts):
      raise IndexError(f"Job {job_id} has no script section {index}.")
    if job.script_generating or job.script_parts[index].is_generating:
      raise JobBusyError(f"Job {job_id} is already generating section {index}.")

    resolved_model = model or job.config.model
    rewriter = self._rewriter_for(resolved_model)
    ctx = self._context(job, resolved_model)

    async def _rewrite(current: Job, position: int) -> ScriptDraft:
      return await rewriter.run(self._rewrite_request(current, position, instructions), ctx)

    return await self._run_sections(job_id, [index], _rewrite, keep_content_on_failure=True, track_job_flag=False)

  def _rewrite_request(self, job: Job, index: int, instructions: str) -> ScriptRewriteRequest:
    return ScriptRewriteRequest(
      title=job.title,
      structure=job.structure,
      index=index,
      current_content=job.script_parts[index].content,
      instructions=instructions,
    )

  async def _run_sections(
    self,
    job_id: int,
    indices: list[int],
    call: SectionCall,
    *,
    keep_content_on_failure: bool,
    track_job_flag: bool = True,
  ) -> ScriptOutcome:
    """Drive sections strictly one after another; a failed section never stops the rest."""
    outcome = ScriptOutcome(job_id=job_id)
    try:
      for index in indices:
        current = await self._store.replace(job_id, lambda job, i=index: _replace_section(job, i, status="generating", error=None))
        self._cost.add("script_section", SCRIPT_SECTION_COST, job_id=job_id)
        try:
          draft = await call(current, index)
        except Exception as exc:  # noqa: BLE001
          message = describe_error(exc)
          logger.error("Script section %s of job %s failed: %s", index, job_id, message)
          outcome.failed[index] = message
          await self._store.replace(job_id, lambda job, i=index, m=message: self._mark_failed(job, i, m, keep_content_on_failure))
          self._notices.error(f"Section {index + 1} failed: {message}", job_id=job_id, section_index=index)
          continue

        outcome.succeeded.append(index)
        await self._store.replace(
          job_id,
          lambda job, i=index, d=draft: _replace_section(job, i, content=d.content, content_localized=d.content_localized, status="done", error=None),
        )
    finally:
      await self._store.replace(job_id, lambda job: self._settle(job, clear_job_flag=track_job_flag))

    logger.info("Job %s script run finished: %s ok, %s failed", job_id, len(outcome.succeeded), len(outcome.failed))
    return outcome

  @staticmethod
  def _mark_failed(job: Job, index: int, message: str, keep_content: bool) -> Job:
    section = job.script_parts[index]
    if keep_content and section.content:
      return _replace_section(job, index, status="done", error=message)
    return _replace_section(job, index, content="", content_localized="", status="failed", error=message)

  @staticmethod
  def _settle(job: Job, *, clear_job_flag: bool) -> Job:
    """Clear every in-flight marker so no section stays stuck after an interrupted run."""
    parts: list[ScriptSection] = []
    for section in job.script_parts:
      if section.status == "generating":
        section = section.model_copy(update={"status": "done" if section.content else "failed"})
      parts.append(section)
    update: dict[str, object] = {"script_parts": parts}
    if clear_job_flag:
      update["script_generating"] = False
    return job.model_copy(update=update)
