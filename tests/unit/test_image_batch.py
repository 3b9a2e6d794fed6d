"""Unit tests for throttled image batch generation."""

from __future__ import annotations

import pytest

from tests.fakes import FakeModel, make_job, make_script, make_settings, make_structure, no_sleep
from tubescript.ai.orchestrator import ScriptOrchestrator
from tubescript.ai.providers.base import ImageResponse
from tubescript.ai.rate_limiter import TokenBucket
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore


class _Clock:
  def __init__(self) -> None:
    self.now = 0.0
    self.sleeps: list[float] = []

  def __call__(self) -> float:
    return self.now

  async def sleep(self, delay: float) -> None:
    self.sleeps.append(delay)
    self.now += delay


def _orchestrator(store: JobStore, notices: NoticeBoard, model: FakeModel, limiter: TokenBucket | None = None) -> ScriptOrchestrator:
  return ScriptOrchestrator(store=store, notices=notices, settings=make_settings(), model_resolver=lambda _model_id: model, sleep=no_sleep, limiter=limiter)


@pytest.mark.anyio
async def test_images_are_prepended_and_failures_skipped(store: JobStore, notices: NoticeBoard) -> None:
  await store.add_many([make_job(1, structure=make_structure(2), script_parts=make_script(1, ["Snow fell on the trench.", "Dawn came."]))])
  model = FakeModel(["A lone soldier, blood on the snow"], images=[ImageResponse(b"1"), RuntimeError("image blocked"), ImageResponse(b"3", mime_type="image/jpeg")])
  orchestrator = _orchestrator(store, notices, model)

  produced = await orchestrator.generate_images(1, instructions="Winter mood", quantity=3)

  job = store.get(1)
  assert produced == 2
  assert [image.url for image in job.generated_images] == ["data:image/jpeg;base64,Mw==", "data:image/png;base64,MQ=="]
  assert all(image.prompt == "A lone soldier, crimson fluid on the snow" for image in job.generated_images)
  assert job.image_instructions == "Winter mood"
  assert "Snow fell on the trench." in model.prompts[0]
  assert model.image_prompts[0] == "Generate a high quality image: A lone soldier, crimson fluid on the snow. Style: Cinematic digital art."
  assert notices.for_job(1)[-1].level == "warning"
  assert orchestrator.total_cost == pytest.approx(0.001 + 3 * 0.04)


@pytest.mark.anyio
async def test_structure_source_and_prompt_fallback(store: JobStore, notices: NoticeBoard) -> None:
  await store.add_many([make_job(1, title="Kursk", structure=make_structure(2))])
  model = FakeModel([ValueError("prompt model down")], images=[ImageResponse(b"x")])
  orchestrator = _orchestrator(store, notices, model)

  produced = await orchestrator.generate_images(1, source="structure", quantity=1)

  assert produced == 1
  assert "[Part 1] Part 1: Description of part 1" in model.prompts[0]
  assert store.get(1).generated_images[0].prompt == "Kursk"


@pytest.mark.anyio
async def test_no_images_pushes_error(store: JobStore, notices: NoticeBoard) -> None:
  await store.add_many([make_job(1, structure=make_structure(1))])
  model = FakeModel(["prompt"], images=[None])
  orchestrator = _orchestrator(store, notices, model)

  assert await orchestrator.generate_images(1, quantity=1) == 0
  assert store.get(1).generated_images == []
  assert notices.for_job(1)[-1].level == "error"


@pytest.mark.anyio
async def test_renders_are_spaced_by_the_limiter(store: JobStore, notices: NoticeBoard) -> None:
  await store.add_many([make_job(1, structure=make_structure(1))])
  clock = _Clock()
  limiter = TokenBucket(refill_seconds=2.0, clock=clock, sleep=clock.sleep)
  model = FakeModel(["prompt"], images=[ImageResponse(b"a"), ImageResponse(b"b"), ImageResponse(b"c")])
  orchestrator = _orchestrator(store, notices, model, limiter=limiter)

  await orchestrator.generate_images(1, quantity=3)

  assert clock.sleeps == [2.0, 2.0]


@pytest.mark.anyio
async def test_quantity_must_be_positive(orchestrator: ScriptOrchestrator, store: JobStore) -> None:
  await store.add_many([make_job(1)])
  with pytest.raises(ValueError):
    await orchestrator.generate_images(1, quantity=0)
