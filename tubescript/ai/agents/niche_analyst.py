"""Agents that derive niche keywords and templates from competitor material."""

from __future__ import annotations

from tubescript.ai.agents.base import BaseAgent
from tubescript.ai.agents.prompts import render_keyword_prompt, render_niche_template_prompt, render_visual_style_prompt
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.pipeline.contracts import JobContext, KeywordList, KeywordRequest, NicheTemplateRequest, VisualStyleRequest


def _clean_keywords(keywords: list[str], limit: int) -> list[str]:
  """Trim, drop blanks and case-insensitive duplicates, keep the first ``limit``."""
  unique: list[str] = []
  seen: set[str] = set()
  for keyword in keywords:
    keyword = keyword.strip()
    if not keyword or keyword.lower() in seen:
      continue
    seen.add(keyword.lower())
    unique.append(keyword)
  return unique[:limit]


class TitleKeywordAgent(BaseAgent[KeywordRequest, list[str]]):
  """Extract search keywords from video titles."""

  name = "TitleKeywords"

  async def run(self, input_data: KeywordRequest, ctx: JobContext) -> list[str]:
    response = await self._call(render_keyword_prompt(input_data), ctx=ctx, purpose="analyze_titles", call_index="1/1")
    return _clean_keywords(self._parse(response.content, KeywordList, ctx=ctx).keywords, input_data.max_keywords)


class VisualStyleAgent(BaseAgent[VisualStyleRequest, list[str]]):
  """Describe a video's visual style as keywords."""

  name = "VisualStyle"

  async def run(self, input_data: VisualStyleRequest, ctx: JobContext) -> list[str]:
    response = await self._call(render_visual_style_prompt(input_data), ctx=ctx, purpose="analyze_visuals", call_index="1/1")
    return _clean_keywords(self._parse(response.content, KeywordList, ctx=ctx).keywords, input_data.count)


class NicheTemplateAgent(BaseAgent[NicheTemplateRequest, str]):
  """Distil transcripts into a reusable structure or script template."""

  name = "NicheTemplate"

  async def run(self, input_data: NicheTemplateRequest, ctx: JobContext) -> str:
    prompt_text = render_niche_template_prompt(input_data)
    response = await self._call(prompt_text, ctx=ctx, purpose=f"niche_{input_data.target}_template", call_index="1/1", json_output=False)
    template = response.content.strip()
    if not template:
      raise MalformedResponseError(f"{self.name} returned an empty {input_data.target} template", raw=response.content)
    return template
