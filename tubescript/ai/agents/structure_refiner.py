"""Structure refinement agent implementation."""

from __future__ import annotations

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import REFINE_SYSTEM_INSTRUCTION, render_refine_prompt
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import JobContext, StructureChunk, StructureRefineRequest
from tubescript.jobs.models import StructureSection


class StructureRefinerAgent(BaseAgent[StructureRefineRequest, list[StructureSection]]):
  """Apply a free-text change request and return a complete replacement structure."""

  name = "StructureRefiner"

  async def run(self, input_data: StructureRefineRequest, ctx: JobContext) -> list[StructureSection]:
    prompt_text = render_refine_prompt(input_data)
    response = await self._call(prompt_text, ctx=ctx, purpose="structure_refine", call_index="1/1", system_instruction=REFINE_SYSTEM_INSTRUCTION)
    refined = self._parse(response.content, StructureChunk, ctx=ctx)
    if not refined.items:
      raise MalformedResponseError(f"{self.name} returned an empty structure", raw=response.content, job_id=ctx.job_id)
    return refined.items
