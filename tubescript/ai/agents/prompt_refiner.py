"""Niche template refinement agent."""

from __future__ import annotations

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import PROMPT_ENGINEER_SYSTEM_INSTRUCTION, render_prompt_refine
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import JobContext, PromptRefineRequest, RefinedPrompt


class PromptRefinerAgent(BaseAgent[PromptRefineRequest, str]):
  """Rewrite a structure or script template according to a change request."""

  name = "PromptRefiner"

  async def run(self, input_data: PromptRefineRequest, ctx: JobContext) -> str:
    prompt_text = render_prompt_refine(input_data)
    response = await self._call(prompt_text, ctx=ctx, purpose="prompt_refine", call_index="1/1", system_instruction=PROMPT_ENGINEER_SYSTEM_INSTRUCTION)
    refined = self._parse(response.content, RefinedPrompt, ctx=ctx).refined_prompt.strip()
    if not refined:
      raise MalformedResponseError(f"{self.name} returned an empty prompt", raw=response.content, job_id=ctx.job_id)
    return refined
