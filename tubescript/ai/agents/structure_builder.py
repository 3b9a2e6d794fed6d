"""Structure chunk agent implementation."""

from __future__ import annotations

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import STRUCTURE_SYSTEM_INSTRUCTION, render_structure_chunk_prompt
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import JobContext, StructureChunk, StructureChunkRequest
from tubescript.jobs.models import StructureSection


class StructureBuilderAgent(BaseAgent[StructureChunkRequest, list[StructureSection]]):
  """Generate one chunk of structure sections."""

  name = "StructureBuilder"

  async def run(self, input_data: StructureChunkRequest, ctx: JobContext) -> list[StructureSection]:
    """Return exactly ``input_data.count`` sections or raise MalformedResponseError."""
    prompt_text = render_structure_chunk_prompt(input_data)
    call_index = f"{input_data.start}-{input_data.end}/{input_data.total_sections}"
    response = await self._call(prompt_text, ctx=ctx, purpose="structure_chunk", call_index=call_index, system_instruction=STRUCTURE_SYSTEM_INSTRUCTION)

    chunk = self._parse(response.content, StructureChunk, ctx=ctx)
    if len(chunk.items) != input_data.count:
      raise MalformedResponseError(
        f"{self.name} returned {len(chunk.items)} sections for parts {input_data.start}-{input_data.end}, expected {input_data.count}",
        raw=response.content,
        job_id=ctx.job_id,
      )
    return chunk.items
