"""Niche template refinement and competitor analysis."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Literal, Protocol

from tubescript.ai.agents.niche_analyst import NicheTemplateAgent, TitleKeywordAgent, VisualStyleAgent
from tubescript.ai.agents.prompt_refiner import PromptRefinerAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.pipeline.contracts import JobContext, KeywordRequest, NicheTemplateRequest, PromptRefineRequest, VisualStyleRequest
from tubescript.ai.utils.cost import NICHE_ANALYSIS_CALL_COST, PROMPT_REFINE_COST, CostMeter
from tubescript.jobs.models import Niche, PromptVersion
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard
from tubescript.utils.ids import DEFAULT_GENERATOR

logger = logging.getLogger(__name__)

PromptTarget = Literal["structure", "script"]

FALLBACK_VISUAL_KEYWORDS = ["Cinematic"]
ANALYZED_NICHE_DURATION = 10


class TranscriptSource(Protocol):
  """Fetches the spoken text of a video, or ``None`` when it has none."""

  async def fetch(self, video_url: str) -> str | None: ...


async def collect_transcripts(urls: Iterable[str], source: TranscriptSource) -> list[str]:
  """Fetch transcripts one video at a time; videos without one are skipped."""
  transcripts: list[str] = []
  for url in urls:
    try:
      text = await source.fetch(url)
    except Exception as exc:  # noqa: BLE001
      logger.warning("Transcript fetch failed for %s: %s", url, exc)
      continue
    if text and text.strip():
      transcripts.append(text.strip())
    else:
      logger.info("No transcript for %s", url)
  return transcripts


def _dedupe(values: Iterable[str]) -> list[str]:
  seen: set[str] = set()
  unique: list[str] = []
  for value in values:
    value = value.strip()
    if value and value.lower() not in seen:
      seen.add(value.lower())
      unique.append(value)
  return unique


class NicheAnalyzer:
  """Rewrite niche templates and build new niches from competitor videos.

  Every change lands in the catalog; persisting it is left to the caller
  through ``NicheCatalog.save``.
  """

  def __init__(
    self,
    *,
    catalog: NicheCatalog,
    refiner_for: Callable[[str | None], PromptRefinerAgent],
    keyword_agent: Callable[[], TitleKeywordAgent],
    visual_agent: Callable[[], VisualStyleAgent],
    template_agent_for: Callable[[str | None], NicheTemplateAgent],
    cost: CostMeter,
    notices: NoticeBoard,
  ) -> None:
    self._catalog = catalog
    self._refiner_for = refiner_for
    self._keyword_agent = keyword_agent
    self._visual_agent = visual_agent
    self._template_agent_for = template_agent_for
    self._cost = cost
    self._notices = notices

  async def refine_prompt(self, niche_id: str, target: PromptTarget, instructions: str, *, model: str | None = None) -> Niche:
    """Rewrite one template of a niche; the previous templates are kept as a version."""
    niche = self._catalog.get(niche_id)
    if niche is None:
      raise KeyError(f"Unknown niche '{niche_id}'.")
    if target not in ("structure", "script"):
      raise ValueError(f"Unknown template target '{target}'.")
    instructions = instructions.strip()
    if not instructions:
      raise ValueError("Describe how the template should change.")

    current = (niche.structure_prompt if target == "structure" else niche.script_prompt) or ""
    agent = self._refiner_for(model)
    ctx = JobContext(title=niche.name, niche_id=niche.id, model=model)

    self._cost.add("prompt_refine", PROMPT_REFINE_COST)
    try:
      refined = await agent.run(PromptRefineRequest(current_prompt=current, instructions=instructions), ctx)
    except Exception as exc:
      logger.error("PromptRefiner failed for niche %s (model=%s): %s", niche.id, agent.model_name, exc)
      self._notices.error(f"The {target} template of '{niche.name}' was not changed: {describe_error(exc)}")
      raise

    version = PromptVersion(structure_prompt=niche.structure_prompt, script_prompt=niche.script_prompt, reason=f"AI {target}: {instructions[:50]}")
    updated = niche.model_copy(update={f"{target}_prompt": refined, "prompt_versions": [version, *niche.prompt_versions]})
    self._catalog.upsert(updated)
    self._notices.info(f"The {target} template of '{niche.name}' was updated.")
    return updated

  async def analyze(self, niche_name: str, *, titles: Iterable[str] = (), transcripts: Iterable[str], thumbnail_url: str | None = None, model: str | None = None) -> Niche:
    """Build a niche from competitor titles and transcripts and add it to the catalog."""
    niche_name = niche_name.strip()
    if not niche_name:
      raise ValueError("The niche needs a name.")
    texts = [text.strip() for text in transcripts if text and text.strip()]
    if not texts:
      raise ValueError(f"No transcripts to analyze for '{niche_name}'.")

    analyzed_titles = _dedupe([*titles, niche_name])
    ctx = JobContext(title=niche_name, model=model)

    self._cost.add("niche_analysis", 2 * NICHE_ANALYSIS_CALL_COST)
    keywords, visuals = await asyncio.gather(
      self._keywords(analyzed_titles, ctx),
      self._visual_keywords(analyzed_titles[0], thumbnail_url, ctx),
    )

    self._cost.add("niche_analysis", 2 * NICHE_ANALYSIS_CALL_COST)
    templates = await asyncio.gather(
      self._template(niche_name, texts, "structure", ctx, model),
      self._template(niche_name, texts, "script", ctx, model),
      return_exceptions=True,
    )
    for result in templates:
      if isinstance(result, BaseException):
        self._notices.error(f"Analysis of '{niche_name}' failed: {describe_error(result)}")
        raise result
    structure_prompt, script_prompt = templates

    niche = Niche(
      id=f"analyzed-{DEFAULT_GENERATOR.next_id()}",
      name=niche_name,
      default_duration=ANALYZED_NICHE_DURATION,
      structure_prompt=structure_prompt,
      script_prompt=script_prompt,
      workflow_description=f"Built from {len(texts)} competitor transcripts.",
      analyzed_keywords=_dedupe([*keywords, *visuals]),
      analyzed_titles=analyzed_titles,
    )
    self._catalog.upsert(niche)
    self._notices.info(f"Niche '{niche_name}' was created from {len(texts)} transcripts.")
    return niche

  async def _keywords(self, titles: list[str], ctx: JobContext) -> list[str]:
    agent = self._keyword_agent()
    try:
      return await agent.run(KeywordRequest(titles=titles), ctx)
    except Exception as exc:  # noqa: BLE001
      logger.warning("TitleKeywords failed for '%s' (model=%s): %s", ctx.title, agent.model_name, exc)
      self._notices.warning(f"Title keywords for '{ctx.title}' are unavailable: {describe_error(exc)}")
      return []

  async def _visual_keywords(self, title: str, thumbnail_url: str | None, ctx: JobContext) -> list[str]:
    agent = self._visual_agent()
    try:
      return await agent.run(VisualStyleRequest(title=title, thumbnail_url=thumbnail_url), ctx) or list(FALLBACK_VISUAL_KEYWORDS)
    except Exception as exc:  # noqa: BLE001
      logger.warning("VisualStyle failed for '%s' (model=%s): %s", ctx.title, agent.model_name, exc)
      self._notices.warning(f"Visual style for '{ctx.title}' is unavailable: {describe_error(exc)}")
      return list(FALLBACK_VISUAL_KEYWORDS)

  async def _template(self, niche_name: str, transcripts: list[str], target: PromptTarget, ctx: JobContext, model: str | None) -> str:
    agent = self._template_agent_for(model)
    try:
      return await agent.run(NicheTemplateRequest(niche_name=niche_name, transcripts=transcripts, target=target), ctx)
    except Exception as exc:
      logger.error("NicheTemplate (%s) failed for '%s' (model=%s): %s", target, niche_name, agent.model_name, exc)
      raise
