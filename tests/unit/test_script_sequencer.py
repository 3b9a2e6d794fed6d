"""Unit tests for sequential script generation and regeneration."""

from __future__ import annotations

import pytest

from tests.fakes import FakeModel, MemoryRepository, make_job, make_script, make_structure, script_reply
from tubescript.ai.orchestrator import ScriptOrchestrator
from tubescript.jobs.models import JobBusyError
from tubescript.jobs.notices import NoticeBoard
from tubescript.jobs.store import JobStore


def _generating_indices(records: list[dict]) -> list[int]:
  return [index for index, part in enumerate(records[0]["scriptParts"]) if part["isGenerating"]]


@pytest.mark.anyio
async def test_full_script_generation(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(5))])
  fake_model.queue(*(script_reply(f"Narration {n}", f"Оповідь {n}") for n in range(1, 6)))

  outcome = await orchestrator.generate_script(1, instructions="Keep it tense")

  job = store.get(1)
  assert outcome.ok
  assert outcome.succeeded == [0, 1, 2, 3, 4]
  assert len(job.script_parts) == 5
  assert all(not part.is_generating for part in job.script_parts)
  assert all(part.status == "done" for part in job.script_parts)
  assert job.script_generating is False
  assert [part.content for part in job.script_parts] == [f"Narration {n}" for n in range(1, 6)]
  assert job.script_parts[0].content_localized == "Оповідь 1"
  assert [part.id for part in job.script_parts] == [f"proj-1-part-{n}" for n in range(5)]
  assert job.script_instructions == "Keep it tense"
  assert orchestrator.total_cost == pytest.approx(0.1)


@pytest.mark.anyio
async def test_sections_run_strictly_in_order(orchestrator: ScriptOrchestrator, store: JobStore, repository: MemoryRepository, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(4))])
  fake_model.queue(*(script_reply(f"Text {n}") for n in range(4)))
  saves_before = len(repository.saves)

  await orchestrator.generate_script(1)

  snapshots = [records for _, records in repository.saves[saves_before:]]
  in_flight = [_generating_indices(records) for records in snapshots]
  assert all(len(indices) <= 1 for indices in in_flight)
  started = [indices[0] for indices in in_flight if indices]
  assert sorted(set(started)) == started == [0, 1, 2, 3]
  assert [prompt.rsplit("\n\n", 1)[-1] for prompt in fake_model.prompts] == [f"TASK: Write the script for Part {n}." for n in range(1, 5)]


@pytest.mark.anyio
async def test_placeholders_are_written_before_the_first_call(orchestrator: ScriptOrchestrator, store: JobStore, repository: MemoryRepository, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(2))])
  observed: list[list[str]] = []

  def _reply(prompt: str) -> str:
    observed.append([part.status for part in store.get(1).script_parts])
    return script_reply("ok")

  fake_model.queue(_reply, _reply)
  await orchestrator.generate_script(1)

  assert observed == [["generating", "queued"], ["done", "generating"]]
  assert store.get(1).script_generating is False


@pytest.mark.anyio
async def test_failed_section_does_not_stop_the_rest(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel, notices: NoticeBoard) -> None:
  await store.add_many([make_job(1, structure=make_structure(3))])
  fake_model.queue(script_reply("one"), ValueError("provider exploded"), script_reply("three"))

  outcome = await orchestrator.generate_script(1)

  job = store.get(1)
  assert outcome.succeeded == [0, 2]
  assert list(outcome.failed) == [1]
  assert [part.status for part in job.script_parts] == ["done", "failed", "done"]
  assert job.script_parts[1].content == ""
  assert "provider exploded" in (job.script_parts[1].error or "")
  assert job.script_generating is False
  failure = notices.for_job(1)[-1]
  assert failure.level == "error"
  assert failure.section_index == 1


@pytest.mark.anyio
async def test_malformed_section_is_isolated(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(2))])
  fake_model.queue('{"unexpected": true}', script_reply("second"))

  outcome = await orchestrator.generate_script(1)

  assert "malformed response" in outcome.failed[0]
  assert store.get(1).script_parts[1].content == "second"


@pytest.mark.anyio
async def test_generation_requires_structure_and_idle_job(orchestrator: ScriptOrchestrator, store: JobStore) -> None:
  busy = make_job(2, structure=make_structure(2)).model_copy(update={"script_generating": True})
  await store.add_many([make_job(1), busy])

  with pytest.raises(ValueError):
    await orchestrator.generate_script(1)
  with pytest.raises(JobBusyError):
    await orchestrator.generate_script(2)


@pytest.mark.anyio
async def test_single_section_regeneration_touches_only_its_index(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  contents = [f"Original {n}" for n in range(5)]
  await store.add_many([make_job(1, structure=make_structure(5), script_parts=make_script(1, contents)), make_job(2, structure=make_structure(5), script_parts=make_script(2, contents))])
  before = [part.model_dump() for part in store.get(1).script_parts]
  other_before = store.get(2).model_dump()
  fake_model.queue(script_reply("Rewritten 2"))

  outcome = await orchestrator.regenerate_section(1, 2, "More drama")

  after = [part.model_dump() for part in store.get(1).script_parts]
  assert outcome.succeeded == [2]
  assert after[2]["content"] == "Rewritten 2"
  assert after[2]["status"] == "done"
  for index in (0, 1, 3, 4):
    assert after[index] == before[index]
  assert store.get(2).model_dump() == other_before
  assert store.get(1).script_generating is False
  prompt = fake_model.prompts[0]
  assert "Original 2" in prompt
  assert "More drama" in prompt


@pytest.mark.anyio
async def test_failed_rewrite_keeps_previous_content(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(3), script_parts=make_script(1, ["a", "b", "c"]))])
  fake_model.queue(ValueError("rewrite refused"))

  outcome = await orchestrator.regenerate_section(1, 1, "Shorter")

  section = store.get(1).script_parts[1]
  assert not outcome.ok
  assert section.content == "b"
  assert section.status == "done"
  assert "rewrite refused" in (section.error or "")


@pytest.mark.anyio
async def test_regenerate_section_rejects_bad_index(orchestrator: ScriptOrchestrator, store: JobStore) -> None:
  await store.add_many([make_job(1, structure=make_structure(2), script_parts=make_script(1, ["a", "b"]))])
  with pytest.raises(IndexError):
    await orchestrator.regenerate_section(1, 2, "x")


@pytest.mark.anyio
async def test_regenerate_all_rewrites_in_order(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel) -> None:
  await store.add_many([make_job(1, structure=make_structure(3), script_parts=make_script(1, ["alpha", "beta", "gamma"]))])
  fake_model.queue(script_reply("A"), ValueError("nope"), script_reply("C"))

  outcome = await orchestrator.regenerate_all_sections(1, "Uppercase everything")

  job = store.get(1)
  assert outcome.succeeded == [0, 2]
  assert [part.content for part in job.script_parts] == ["A", "beta", "C"]
  assert job.script_generating is False
  assert "alpha" in fake_model.prompts[0]


@pytest.mark.anyio
async def test_generate_scripts_skips_jobs_without_structure(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel, notices: NoticeBoard) -> None:
  await store.add_many(
    [
      make_job(1, title="T [Ver 1-1]", structure=make_structure(2)),
      make_job(2, title="T [Ver 1-2]", structure=make_structure(2)),
      make_job(3, title="T [Ver 2-1]"),
    ]
  )
  fake_model.queue(*(script_reply("text") for _ in range(4)))

  outcomes = await orchestrator.generate_scripts([1, 2, 3])

  assert sorted(outcome.job_id for outcome in outcomes) == [1, 2]
  assert all(outcome.ok for outcome in outcomes)
  assert notices.for_job(3)[-1].level == "warning"
  assert store.get(3).script_parts == []


@pytest.mark.anyio
async def test_generate_scripts_reports_a_busy_job_and_finishes_the_rest(orchestrator: ScriptOrchestrator, store: JobStore, fake_model: FakeModel, notices: NoticeBoard) -> None:
  busy = make_job(1, title="T [Ver 1-1]", structure=make_structure(2)).model_copy(update={"script_generating": True})
  await store.add_many([busy, make_job(2, title="T [Ver 2-1]", structure=make_structure(2)), make_job(3, title="T [Ver 1-2]", structure=make_structure(2))])
  fake_model.queue(*(script_reply("text") for _ in range(4)))

  outcomes = await orchestrator.generate_scripts([1, 2, 3])

  by_job = {outcome.job_id: outcome for outcome in outcomes}
  assert sorted(by_job) == [1, 2, 3]
  assert isinstance(by_job[1].error, JobBusyError)
  assert not by_job[1].ok
  assert by_job[2].ok and by_job[3].ok
  assert [part.content for part in store.get(3).script_parts] == ["text", "text"]
  assert store.get(1).script_parts == []
  assert notices.for_job(1)[-1].level == "error"
