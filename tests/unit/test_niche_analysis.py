"""Unit tests for niche template refinement and competitor analysis."""

from __future__ import annotations

import json

import pytest

from tests.fakes import FakeModel
from tubescript.ai.agents.niche_analyst import _clean_keywords
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.niche_analysis import collect_transcripts
from tubescript.ai.orchestrator import ScriptOrchestrator
from tubescript.jobs.niches import NicheCatalog
from tubescript.jobs.notices import NoticeBoard


def _route(prompt: str) -> str:
  """Answer each analysis call by what it asks for."""
  if "Analyze these video titles" in prompt:
    return json.dumps({"keywords": ["Eastern Front", "tank battles", "eastern front", "logistics"]})
  if "visual style" in prompt:
    return json.dumps({"keywords": ["Desaturated", "Archive footage"]})
  if "STRUCTURE of a new video" in prompt:
    return "Structure template for {{TITLE}} in {{TOTAL_PARTS}} parts."
  if "SCRIPT for one part" in prompt:
    return "Script template for part {{CURRENT_PART_NUM}}."
  raise AssertionError(f"unexpected prompt: {prompt[:60]}")


class _Transcripts:
  def __init__(self, texts: dict[str, str | None | BaseException]) -> None:
    self._texts = texts
    self.fetched: list[str] = []

  async def fetch(self, video_url: str) -> str | None:
    self.fetched.append(video_url)
    text = self._texts[video_url]
    if isinstance(text, BaseException):
      raise text
    return text


@pytest.mark.anyio
async def test_refine_niche_prompt_updates_template_and_keeps_a_version(orchestrator: ScriptOrchestrator, catalog: NicheCatalog, fake_model: FakeModel, notices: NoticeBoard) -> None:
  before = catalog.get("war")
  fake_model.queue(json.dumps({"refinedPrompt": "  Shorter war structure prompt  "}))

  updated = await orchestrator.refine_niche_prompt("war", "structure", "Make every part shorter and add more dialogue")

  assert updated.structure_prompt == "Shorter war structure prompt"
  assert updated.script_prompt == before.script_prompt
  assert catalog.get("war").structure_prompt == "Shorter war structure prompt"
  version = updated.prompt_versions[0]
  assert version.structure_prompt == before.structure_prompt
  assert version.reason == "AI structure: Make every part shorter and add more dialogue"
  assert before.structure_prompt in fake_model.prompts[0]
  assert fake_model.system_instructions[0] == "You are an expert prompt engineer. JSON only."
  assert orchestrator.total_cost == pytest.approx(0.001)
  assert notices.notices[-1].level == "info"


@pytest.mark.anyio
async def test_failed_prompt_refinement_leaves_the_niche_alone(orchestrator: ScriptOrchestrator, catalog: NicheCatalog, fake_model: FakeModel, notices: NoticeBoard) -> None:
  before = catalog.get("caprio")
  fake_model.queue(json.dumps({"refinedPrompt": "   "}))

  with pytest.raises(MalformedResponseError):
    await orchestrator.refine_niche_prompt("caprio", "script", "More courtroom dialogue")

  assert catalog.get("caprio") == before
  assert notices.notices[-1].level == "error"
  assert "script template of 'Judge Caprio Stories' was not changed" in notices.notices[-1].message


@pytest.mark.anyio
async def test_refine_niche_prompt_validates_before_calling(orchestrator: ScriptOrchestrator, fake_model: FakeModel) -> None:
  with pytest.raises(KeyError):
    await orchestrator.refine_niche_prompt("missing", "script", "Anything")
  with pytest.raises(ValueError):
    await orchestrator.refine_niche_prompt("war", "script", "   ")

  assert fake_model.prompts == []
  assert orchestrator.total_cost == 0


@pytest.mark.anyio
async def test_analyze_niche_builds_a_niche_from_competitors(orchestrator: ScriptOrchestrator, catalog: NicheCatalog, fake_model: FakeModel) -> None:
  fake_model.queue(_route, _route, _route, _route)

  niche = await orchestrator.analyze_niche(
    "Tank Battles",
    titles=["Kursk: the largest tank battle", "  "],
    transcripts=["First transcript " * 10, "", "Second transcript"],
    thumbnail_url="https://img.example/thumb.jpg",
  )

  assert niche.id.startswith("analyzed-")
  assert niche.default_duration == 10
  assert niche.structure_prompt == "Structure template for {{TITLE}} in {{TOTAL_PARTS}} parts."
  assert niche.script_prompt == "Script template for part {{CURRENT_PART_NUM}}."
  assert niche.analyzed_titles == ["Kursk: the largest tank battle", "Tank Battles"]
  assert niche.analyzed_keywords == ["Eastern Front", "tank battles", "logistics", "Desaturated", "Archive footage"]
  assert catalog.get(niche.id) == niche

  visual_prompt = next(prompt for prompt in fake_model.prompts if "visual style" in prompt)
  assert "Kursk: the largest tank battle" in visual_prompt
  assert "Thumbnail: https://img.example/thumb.jpg" in visual_prompt
  template_prompt = next(prompt for prompt in fake_model.prompts if "STRUCTURE of a new video" in prompt)
  assert "Second transcript" in template_prompt
  assert '"Tank Battles"' in template_prompt
  assert orchestrator.total_cost == pytest.approx(0.004)


@pytest.mark.anyio
async def test_analyze_niche_falls_back_when_keywords_fail(orchestrator: ScriptOrchestrator, fake_model: FakeModel, notices: NoticeBoard) -> None:
  def _flaky(prompt: str) -> str:
    if "Analyze these video titles" in prompt or "visual style" in prompt:
      return "not json at all"
    return _route(prompt)

  fake_model.queue(_flaky, _flaky, _flaky, _flaky)

  niche = await orchestrator.analyze_niche("Sieges", transcripts=["Transcript"])

  assert niche.analyzed_keywords == ["Cinematic"]
  assert niche.analyzed_titles == ["Sieges"]
  assert len([notice for notice in notices.notices if notice.level == "warning"]) == 2


@pytest.mark.anyio
async def test_analyze_niche_does_not_add_a_niche_when_a_template_fails(orchestrator: ScriptOrchestrator, catalog: NicheCatalog, fake_model: FakeModel, notices: NoticeBoard) -> None:
  def _no_script(prompt: str) -> str:
    if "SCRIPT for one part" in prompt:
      return "   "
    return _route(prompt)

  fake_model.queue(_no_script, _no_script, _no_script, _no_script)
  known = {niche.id for niche in catalog.all()}

  with pytest.raises(MalformedResponseError):
    await orchestrator.analyze_niche("Sieges", transcripts=["Transcript"])

  assert {niche.id for niche in catalog.all()} == known
  assert notices.notices[-1].level == "error"


@pytest.mark.anyio
async def test_analyze_niche_needs_transcripts(orchestrator: ScriptOrchestrator, fake_model: FakeModel) -> None:
  with pytest.raises(ValueError, match="No transcripts"):
    await orchestrator.analyze_niche("Sieges", transcripts=["", "   "])

  assert fake_model.prompts == []
  assert orchestrator.total_cost == 0


@pytest.mark.anyio
async def test_collect_transcripts_skips_videos_without_one() -> None:
  source = _Transcripts({"a": " First ", "b": None, "c": ConnectionError("blocked"), "d": "Fourth"})

  transcripts = await collect_transcripts(["a", "b", "c", "d"], source)

  assert transcripts == ["First", "Fourth"]
  assert source.fetched == ["a", "b", "c", "d"]


def test_clean_keywords_trims_and_caps() -> None:
  assert _clean_keywords([" War ", "war", "", "Tanks", "Sieges", "Logistics"], 3) == ["War", "Tanks", "Sieges"]
