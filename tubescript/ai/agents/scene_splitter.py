"""Scene segmentation agent implementation."""

from __future__ import annotations

import logging

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import render_scene_split_prompt, sanitize_image_prompt
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import JobContext, SceneList, SceneSplitRequest
from tubescript.jobs.models import Scene

logger = logging.getLogger(__name__)


class SceneSplitterAgent(BaseAgent[SceneSplitRequest, list[Scene]]):
  """Cut narration into segments and give each one an image prompt in a fixed style."""

  name = "SceneSplitter"

  async def run(self, input_data: SceneSplitRequest, ctx: JobContext, *, section_index: int | None = None) -> list[Scene]:
    prompt_text = render_scene_split_prompt(input_data)
    call_index = f"section {section_index + 1}" if section_index is not None else "1/1"
    response = await self._call(prompt_text, ctx=ctx, purpose="scene_split", call_index=call_index)
    scenes = self._parse(response.content, SceneList, ctx=ctx, section_index=section_index).scenes
    scenes = [scene for scene in scenes if scene.segment_text.strip()]
    if not scenes:
      raise MalformedResponseError(f"{self.name} returned no scenes", raw=response.content, job_id=ctx.job_id, section_index=section_index)

    logger.debug("%s produced %s scenes for job %s", self.name, len(scenes), ctx.job_id)
    return [scene.model_copy(update={"image_prompt": sanitize_image_prompt(scene.image_prompt)}) for scene in scenes]
