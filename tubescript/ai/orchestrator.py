"""Orchestration facade for topic expansion, structures, scripts and images."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from tubescript.ai.agents.base import CallPolicy
from tubescript.ai.agents.illustrator import ImagePromptAgent, ImageRendererAgent
from tubescript.ai.agents.niche_analyst import NicheTemplateAgent, TitleKeywordAgent, VisualStyleAgent
from tubescript.ai.agents.prompt_refiner import PromptRefinerAgent
from tubescript.ai.agents.scene_splitter import SceneSplitterAgent
from tubescript.ai.agents.script_writer import ScriptRewriterAgent, ScriptWriterAgent
from tubescript.ai.agents.structure_builder import StructureBuilderAgent
from tubescript.ai.agents.structure_refiner import StructureRefinerAgent
from tubescript.ai.errors import describe_error
from tubescript.ai.image_batch import ImageBatchGenerator, ImageSource
from tubescript.ai.niche_analysis import NicheAnalyzer, PromptTarget
from tubescript.ai.pipeline.contracts import LengthBounds
from tubescript.ai.providers.base import AIModel
from tubescript.ai.rate_limiter import TokenBucket
from tubescript.ai.refinement import RefinementApplier
from tubescript.ai.router import get_model_for_id
from tubescript.ai.scene_planner import ScenePlanner
from tubescript.ai.script_sequencer import ScriptOutcome, ScriptSequencer
from tubescript.ai.structure_coordinator import StructureCoordinator, StructureGroupOutcome, group_jobs
from tubescript.ai.utils.cost import CostMeter
from tubescript.config import Settings, get_settings
from tubescript.jobs.expander import expand_batch
from tubescript.jobs.models import Job, Niche, Scene, StructureSection, TopicRequest
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore

logger = logging.getLogger(__name__)

ModelResolver = Callable[[str | None], AIModel]
Sleep = Callable[[float], Awaitable[Any]]


class ScriptOrchestrator:
  """Single owner of the job store and every generation coordinator."""

  def __init__(
    self,
    *,
    store: JobStore,
    catalog: NicheCatalog | None = None,
    cost: CostMeter | None = None,
    notices: NoticeBoard | None = None,
    settings: Settings | None = None,
    model_resolver: ModelResolver = get_model_for_id,
    sleep: Sleep = asyncio.sleep,
    limiter: TokenBucket | None = None,
  ) -> None:
    self._settings = settings or get_settings()
    self._store = store
    self._catalog = catalog or NicheCatalog()
    self._cost = cost or CostMeter()
    self._notices = notices or NoticeBoard()
    self._resolve_model = model_resolver
    self._sleep = sleep
    self._policy = CallPolicy(
      timeout_seconds=self._settings.provider_timeout_seconds or None,
      retry_attempts=self._settings.retry_attempts,
      retry_initial_delay=self._settings.retry_initial_delay_seconds,
    )
    bounds = LengthBounds(
      min_chars=self._settings.script_min_chars,
      max_chars=self._settings.script_max_chars,
      min_words=self._settings.script_min_words,
      max_words=self._settings.script_max_words,
    )

    self._structures = StructureCoordinator(store=store, agent_for=self._structure_agent, catalog=self._catalog, cost=self._cost, notices=self._notices)
    self._scripts = ScriptSequencer(
      store=store,
      writer_for=self._writer_agent,
      rewriter_for=self._rewriter_agent,
      catalog=self._catalog,
      cost=self._cost,
      notices=self._notices,
      bounds=bounds,
    )
    self._refinement = RefinementApplier(store=store, refiner_for=self._refiner_agent, cost=self._cost, notices=self._notices)
    self._images = ImageBatchGenerator(
      store=store,
      prompt_agent=self._image_prompt_agent,
      renderer=self._image_renderer,
      catalog=self._catalog,
      cost=self._cost,
      notices=self._notices,
      limiter=limiter or TokenBucket(refill_seconds=self._settings.image_interval_seconds, sleep=sleep),
    )
    self._scenes = ScenePlanner(store=store, splitter=self._scene_splitter, cost=self._cost, notices=self._notices)
    self._niche_analysis = NicheAnalyzer(
      catalog=self._catalog,
      refiner_for=self._prompt_refiner,
      keyword_agent=self._title_keyword_agent,
      visual_agent=self._visual_style_agent,
      template_agent_for=self._niche_template_agent,
      cost=self._cost,
      notices=self._notices,
    )

  @property
  def store(self) -> JobStore:
    return self._store

  @property
  def catalog(self) -> NicheCatalog:
    return self._catalog

  @property
  def notices(self) -> NoticeBoard:
    return self._notices

  @property
  def cost(self) -> CostMeter:
    return self._cost

  @property
  def total_cost(self) -> float:
    return self._cost.total

  def _model(self, model_id: str | None) -> AIModel:
    return self._resolve_model(model_id or self._settings.default_model)

  def _agent_kwargs(self) -> dict[str, Any]:
    return {"policy": self._policy, "use": self._cost.record_usage, "sleep": self._sleep}

  def _structure_agent(self, model_id: str | None) -> StructureBuilderAgent:
    return StructureBuilderAgent(model=self._model(model_id), **self._agent_kwargs())

  def _writer_agent(self, model_id: str | None) -> ScriptWriterAgent:
    return ScriptWriterAgent(model=self._model(model_id), **self._agent_kwargs())

  def _rewriter_agent(self, model_id: str | None) -> ScriptRewriterAgent:
    return ScriptRewriterAgent(model=self._model(model_id), **self._agent_kwargs())

  def _refiner_agent(self, model_id: str | None) -> StructureRefinerAgent:
    return StructureRefinerAgent(model=self._model(model_id), **self._agent_kwargs())

  def _image_prompt_agent(self) -> ImagePromptAgent:
    return ImagePromptAgent(model=self._model(self._settings.image_prompt_model), **self._agent_kwargs())

  def _image_renderer(self) -> ImageRendererAgent:
    return ImageRendererAgent(model=self._model(self._settings.image_model), **self._agent_kwargs())

  def _scene_splitter(self) -> SceneSplitterAgent:
    return SceneSplitterAgent(model=self._model(self._settings.image_prompt_model), **self._agent_kwargs())

  def _prompt_refiner(self, model_id: str | None) -> PromptRefinerAgent:
    return PromptRefinerAgent(model=self._model(model_id), **self._agent_kwargs())

  def _title_keyword_agent(self) -> TitleKeywordAgent:
    return TitleKeywordAgent(model=self._model(self._settings.image_prompt_model), **self._agent_kwargs())

  def _visual_style_agent(self) -> VisualStyleAgent:
    return VisualStyleAgent(model=self._model(self._settings.image_prompt_model), **self._agent_kwargs())

  def _niche_template_agent(self, model_id: str | None) -> NicheTemplateAgent:
    return NicheTemplateAgent(model=self._model(model_id), **self._agent_kwargs())

  async def submit_topic(self, request: TopicRequest | dict[str, Any]) -> list[Job]:
    """Validate and expand a topic request; generate structures right away when asked to."""
    topic = request if isinstance(request, TopicRequest) else TopicRequest.from_input(request)
    jobs = await self._store.add_many(expand_batch(topic))
    if topic.start_generation:
      await self.generate_structures(jobs, instructions=topic.instructions, model=topic.model)
    return [self._store.get(job.id) for job in jobs]

  async def generate_structures(self, jobs: Iterable[Job], *, instructions: str | None = None, model: str | None = None) -> list[StructureGroupOutcome]:
    return await self._structures.generate_batch(jobs, instructions=instructions, model=model)

  async def generate_structure(self, job_id: int, *, instructions: str | None = None, model: str | None = None) -> StructureGroupOutcome:
    return await self._structures.generate_for_job(job_id, instructions=instructions, model=model)

  async def refine_structure(self, job_id: int, instructions: str, *, model: str | None = None, include_siblings: bool = True) -> list[StructureSection]:
    """Refine one job's structure; siblings sharing the structure get the same result by default."""
    job = self._store.get(job_id)
    targets = [sibling.id for sibling in self._store.siblings_of(job)] if include_siblings else [job_id]
    return await self._refinement.refine(job_id, instructions, model=model, targets=targets)

  async def generate_script(self, job_id: int, *, instructions: str | None = None, model: str | None = None) -> ScriptOutcome:
    return await self._scripts.generate(job_id, instructions=instructions, model=model)

  async def generate_scripts(self, job_ids: Iterable[int], *, instructions: str | None = None, model: str | None = None) -> list[ScriptOutcome]:
    """Generate scripts for many jobs: groups run concurrently, jobs inside one group run one after another."""
    jobs = [self._store.get(job_id) for job_id in job_ids]
    ready = [job for job in jobs if job.structure]
    for job in jobs:
      if not job.structure:
        self._notices.warning(f"Skipping '{job.title}': it has no structure yet.", job_id=job.id)

    async def _run_group(members: list[Job]) -> list[ScriptOutcome]:
      outcomes: list[ScriptOutcome] = []
      for member in members:
        try:
          outcomes.append(await self._scripts.generate(member.id, instructions=instructions, model=model))
        except Exception as exc:  # noqa: BLE001
          logger.error("Script run for job %s did not start: %s", member.id, exc)
          self._notices.error(f"Script for '{member.title}' was not generated: {describe_error(exc)}", job_id=member.id)
          outcomes.append(ScriptOutcome(job_id=member.id, error=exc))
      return outcomes

    grouped = await asyncio.gather(*(_run_group(members) for members in group_jobs(ready).values()))
    return [outcome for group in grouped for outcome in group]

  async def regenerate_section(self, job_id: int, index: int, instructions: str, *, model: str | None = None) -> ScriptOutcome:
    return await self._scripts.regenerate_section(job_id, index, instructions, model=model)

  async def regenerate_all_sections(self, job_id: int, instructions: str, *, model: str | None = None) -> ScriptOutcome:
    return await self._scripts.regenerate_all(job_id, instructions, model=model)

  async def generate_images(self, job_id: int, *, source: ImageSource = "script", instructions: str = "", quantity: int = 4, aspect_ratio: str = "16:9") -> int:
    return await self._images.generate(job_id, source=source, instructions=instructions, quantity=quantity, aspect_ratio=aspect_ratio)

  async def split_scenes(self, job_id: int, index: int, *, min_chars: int = 100, max_chars: int = 250, instructions: str = "", style: str | None = None) -> list[Scene]:
    """Break one written section into scenes, each with an image prompt."""
    return await self._scenes.split(job_id, index, min_chars=min_chars, max_chars=max_chars, instructions=instructions, style=style)

  async def refine_niche_prompt(self, niche_id: str, target: PromptTarget, instructions: str, *, model: str | None = None) -> Niche:
    return await self._niche_analysis.refine_prompt(niche_id, target, instructions, model=model)

  async def analyze_niche(self, niche_name: str, *, titles: Iterable[str] = (), transcripts: Iterable[str], thumbnail_url: str | None = None, model: str | None = None) -> Niche:
    """Create a niche from competitor titles and transcripts."""
    return await self._niche_analysis.analyze(niche_name, titles=titles, transcripts=transcripts, thumbnail_url=thumbnail_url, model=model)
