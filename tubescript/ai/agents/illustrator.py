"""Image prompt and image rendering agents."""

from __future__ import annotations

import logging

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import render_image_prompt, render_image_request, sanitize_image_prompt
from tubescript.ai.backoff import retry_with_backoff
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import ImagePromptRequest, JobContext
from tubescript.ai.providers.base import ImageResponse
from tubescript.telemetry.context import llm_call_context

logger = logging.getLogger(__name__)


class ImagePromptAgent(BaseAgent[ImagePromptRequest, str]):
  """Condense structure or script text into one safe image prompt."""

  name = "ImagePrompt"

  async def run(self, input_data: ImagePromptRequest, ctx: JobContext) -> str:
    prompt_text = render_image_prompt(input_data)
    response = await self._call(prompt_text, ctx=ctx, purpose="image_prompt", call_index="1/1", json_output=False)
    refined = response.content.strip()
    if not refined:
      raise MalformedResponseError(f"{self.name} returned an empty prompt", raw=response.content, job_id=ctx.job_id)
    return sanitize_image_prompt(refined)


class ImageRendererAgent(BaseAgent[str, ImageResponse | None]):
  """Render one image from a prompt."""

  name = "ImageRenderer"

  async def _render_once(self, prompt_text: str, aspect_ratio: str) -> ImageResponse | None:
    return await self._with_timeout(self._model.generate_image(prompt_text, aspect_ratio=aspect_ratio))

  async def run(self, input_data: str, ctx: JobContext, *, aspect_ratio: str = "16:9", call_index: str = "1/1") -> ImageResponse | None:
    prompt_text = render_image_request(input_data)
    with llm_call_context(agent=self.name, job_id=ctx.job_id, title=ctx.title, purpose="image_render", call_index=call_index) as call_ctx:
      logger.info("%s -> %s (%s)", self.name, self.model_name, call_ctx.describe())
      return await retry_with_backoff(
        self._render_once,
        prompt_text,
        aspect_ratio,
        attempts=self._policy.retry_attempts,
        initial_delay=self._policy.retry_initial_delay,
        sleep=self._sleep,
      )
