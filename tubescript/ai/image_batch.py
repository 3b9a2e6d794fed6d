"""Batch image generation for a job, throttled by a shared token bucket."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Literal

from tubescript.ai.agents.illustrator import ImagePromptAgent, ImageRendererAgent
from tubescript.ai.agents.prompts import format_structure_text
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import ImagePromptRequest, JobContext
from tubescript.ai.rate_limiter import TokenBucket
from tubescript.ai.utils.cost import CostMeter, image_batch_cost
from tubescript.jobs.models import GeneratedImage, Job
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore
from tubescript.utils.ids import generate_image_id

logger = logging.getLogger(__name__)

ImageSource = Literal["structure", "script"]


def source_text_for(job: Job, source: ImageSource) -> str:
  if source == "structure":
    return format_structure_text(job.structure)
  return "\n\n".join(section.content for section in job.script_parts if section.content)


class ImageBatchGenerator:
  """Refine one prompt, then render ``quantity`` images one at a time."""

  def __init__(
    self,
    *,
    store: JobStore,
    prompt_agent: Callable[[], ImagePromptAgent],
    renderer: Callable[[], ImageRendererAgent],
    catalog: NicheCatalog,
    cost: CostMeter,
    notices: NoticeBoard,
    limiter: TokenBucket | None = None,
  ) -> None:
    self._store = store
    self._prompt_agent = prompt_agent
    self._renderer = renderer
    self._catalog = catalog
    self._cost = cost
    self._notices = notices
    self._limiter = limiter or TokenBucket()

  async def generate(self, job_id: int, *, source: ImageSource = "script", instructions: str = "", quantity: int = 4, aspect_ratio: str = "16:9") -> int:
    """Return the number of images added to the job (newest first)."""
    if quantity <= 0:
      raise ValueError("quantity must be positive")

    job = self._store.get(job_id)
    ctx = JobContext(job_id=job.id, title=job.title, niche_id=job.config.niche_id)
    niche = self._catalog.resolve(job.config.niche_id)
    self._cost.add("image_batch", image_batch_cost(quantity), job_id=job_id)
    await self._store.replace(job_id, lambda current: current.model_copy(update={"image_instructions": instructions}))

    prompt_text = await self._refine_prompt(job, niche.name, source, instructions, ctx)
    renderer = self._renderer()
    produced = 0
    for position in range(quantity):
      await self._limiter.acquire()
      try:
        image = await renderer.run(prompt_text, ctx, aspect_ratio=aspect_ratio, call_index=f"{position + 1}/{quantity}")
      except Exception as exc:  # noqa: BLE001
        logger.error("Image %s/%s for job %s failed: %s", position + 1, quantity, job_id, exc)
        self._notices.warning(f"Image {position + 1} of {quantity} failed: {describe_error(exc)}", job_id=job_id)
        continue
      if image is None:
        continue

      generated = GeneratedImage(id=generate_image_id(), url=image.data_url, prompt=prompt_text, aspect_ratio=aspect_ratio)
      await self._store.replace(job_id, lambda current, g=generated: current.model_copy(update={"generated_images": [g, *current.generated_images]}))
      produced += 1

    if produced == 0:
      self._notices.error(f"No images were generated for '{job.title}'.", job_id=job_id)
    return produced

  async def _refine_prompt(self, job: Job, niche_name: str, source: ImageSource, instructions: str, ctx: JobContext) -> str:
    request = ImagePromptRequest(title=job.title, niche=niche_name, source_text=source_text_for(job, source), instructions=instructions)
    try:
      return await self._prompt_agent().run(request, ctx)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Image prompt refinement failed for job %s, using fallback prompt: %s", job.id, exc)
      return instructions or job.title
