"""Script section agents: first drafts and rewrites."""

from __future__ import annotations

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import REWRITE_SYSTEM_INSTRUCTION, SCRIPT_SYSTEM_INSTRUCTION, render_rewrite_prompt, render_script_prompt
from tubescript.ai.pipeline.contracts import JobContext, ScriptDraft, ScriptRewriteRequest, ScriptSectionRequest


class ScriptWriterAgent(BaseAgent[ScriptSectionRequest, ScriptDraft]):
  """Write the first draft of one script section with the whole structure as context."""

  name = "ScriptWriter"

  async def run(self, input_data: ScriptSectionRequest, ctx: JobContext) -> ScriptDraft:
    prompt_text = render_script_prompt(input_data)
    call_index = f"{input_data.index + 1}/{len(input_data.structure)}"
    response = await self._call(prompt_text, ctx=ctx, purpose="script_section", call_index=call_index, system_instruction=SCRIPT_SYSTEM_INSTRUCTION)
    return self._parse(response.content, ScriptDraft, ctx=ctx, section_index=input_data.index)


class ScriptRewriterAgent(BaseAgent[ScriptRewriteRequest, ScriptDraft]):
  """Rewrite one existing script section following new instructions."""

  name = "ScriptRewriter"

  async def run(self, input_data: ScriptRewriteRequest, ctx: JobContext) -> ScriptDraft:
    prompt_text = render_rewrite_prompt(input_data)
    call_index = f"{input_data.index + 1}/{len(input_data.structure)}"
    response = await self._call(prompt_text, ctx=ctx, purpose="script_rewrite", call_index=call_index, system_instruction=REWRITE_SYSTEM_INSTRUCTION)
    return self._parse(response.content, ScriptDraft, ctx=ctx, section_index=input_data.index)
