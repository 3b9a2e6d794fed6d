"""Unit tests for structure refinement."""

from __future__ import annotations

import pytest

from tests.fakes import FakeModel, make_job, make_script, make_structure, structure_reply
from tubescript.ai.errors import MalformedResponseError
from tubescript.ai.orchestrator import ScriptOrchestrator
from tubescript.jobs.models import JobBusyError
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore


async def _seed(store: JobStore) -> None:
  await store.add_many(
    [
      make_job(1, title="Siege [Ver 1-1]", structure=make_structure(3)),
      make_job(2, title="Siege [Ver 1-2]", structure=make_structure(3)),
      make_job(3, title="Siege [Ver 2-1]", structure=make_structure(3, prefix="Other")),
    ]
  )


@pytest.mark.anyio
async def test_refinement_replaces_structure_on_siblings(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await _seed(store)
  fake_model.queue(structure_reply(1, 4, prefix="Twist"))

  refined = await orchestrator.refine_structure(1, "Add a twist at the end")

  assert [section.title for section in refined] == ["Twist 1", "Twist 2", "Twist 3", "Twist 4"]
  for job_id in (1, 2):
    job = store.get(job_id)
    assert [section.title for section in job.structure] == ["Twist 1", "Twist 2", "Twist 3", "Twist 4"]
    assert job.structure_generating is False
  assert store.get(3).structure[0].title == "Other 1"
  prompt = fake_model.prompts[0]
  assert '"title": "Part 1"' in prompt
  assert "Add a twist at the end" in prompt
  assert orchestrator.total_cost == pytest.approx(0.001)


@pytest.mark.anyio
async def test_refinement_can_target_only_one_job(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await _seed(store)
  fake_model.queue(structure_reply(1, 2, prefix="Solo"))

  await orchestrator.refine_structure(2, "Shorter", include_siblings=False)

  assert store.get(2).structure[0].title == "Solo 1"
  assert store.get(1).structure[0].title == "Part 1"


@pytest.mark.anyio
async def test_failed_refinement_keeps_structure_and_clears_flags(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel, notices: NoticeBoard) -> None:
  await _seed(store)
  fake_model.queue(ValueError("refiner offline"))

  with pytest.raises(ValueError, match="refiner offline"):
    await orchestrator.refine_structure(1, "Anything")

  for job_id in (1, 2):
    job = store.get(job_id)
    assert job.structure == make_structure(3)
    assert job.structure_generating is False
  assert notices.for_job(1)[-1].level == "error"


@pytest.mark.anyio
async def test_empty_refined_structure_is_malformed(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await _seed(store)
  fake_model.queue('{"items": []}')

  with pytest.raises(MalformedResponseError):
    await orchestrator.refine_structure(1, "Remove everything")

  assert len(store.get(1).structure) == 3


@pytest.mark.anyio
async def test_refinement_preconditions(orchestrator: ScriptOrchestrator, store: JobStore) -> None:
  await store.add_many([make_job(1), make_job(2, structure=make_structure(2))])

  with pytest.raises(ValueError):
    await orchestrator.refine_structure(1, "Anything")
  with pytest.raises(ValueError):
    await orchestrator.refine_structure(2, "   ")


@pytest.mark.anyio
async def test_refinement_trims_script_to_the_new_structure(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(5), script_parts=make_script(1, ["one", "two", "three", "four", "five"]))])
  fake_model.queue(structure_reply(1, 2, prefix="Short"))

  await orchestrator.refine_structure(1, "Only two parts")

  job = store.get(1)
  assert len(job.structure) == 2
  assert [part.content for part in job.script_parts] == ["one", "two"]


@pytest.mark.anyio
async def test_refinement_is_refused_while_a_script_is_generating(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel, notices: NoticeBoard) -> None:
  await _seed(store)
  await store.replace(2, lambda job: job.model_copy(update={"script_generating": True}))

  with pytest.raises(JobBusyError):
    await orchestrator.refine_structure(1, "Change it")

  assert fake_model.prompts == []
  assert orchestrator.total_cost == 0
  assert all(not job.structure_generating for job in store.list())
  assert store.get(1).structure == make_structure(3)
  assert notices.for_job(1)[-1].level == "warning"
