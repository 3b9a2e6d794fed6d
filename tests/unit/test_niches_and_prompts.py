"""Unit tests for the niche catalog and prompt rendering."""

from __future__ import annotations

import pytest

from tests.fakes import MemoryRepository, make_structure
from tubescript.ai.agents.prompts import (
  format_previous_context,
  load_template,
  render_image_request,
  render_rewrite_prompt,
  render_script_prompt,
  render_structure_chunk_prompt,
  sanitize_image_prompt,
)
from tubescript.ai.pipeline.contracts import LengthBounds, ScriptRewriteRequest, ScriptSectionRequest, StructureChunk, StructureChunkRequest
from tubescript.jobs.models import Niche
from tubescript.jobs.niches import NicheCatalog, default_niches
from tubescript.storage.collections_repo import NICHES_COLLECTION
from tubescript.utils.instruction_parsing import parse_chunk_size


def test_default_niches_ship_templates() -> None:
  niches = {niche.id: niche for niche in default_niches()}
  assert set(niches) == {"caprio", "slavery", "war"}
  for niche in niches.values():
    assert "{{TITLE}}" in (niche.structure_prompt or "")
    assert niche.script_prompt
  assert parse_chunk_size(niches["war"].workflow_description) == 4


def test_resolve_by_id_name_and_reference() -> None:
  catalog = NicheCatalog()
  assert catalog.resolve("war").id == "war"
  assert catalog.resolve("Slavery Stories").id == "slavery"
  assert catalog.resolve("my-caprio-copy").id == "caprio"
  assert catalog.resolve("unknown").id == "caprio"


def test_custom_niche_without_templates_keeps_builtin_ones() -> None:
  catalog = NicheCatalog([Niche(id="war", name="War (mine)", workflow_description="Use batches of 2 parts")])
  war = catalog.get("war")
  assert war is not None
  assert war.name == "War (mine)"
  assert war.structure_prompt == load_template("war_structure.md")
  assert parse_chunk_size(war.workflow_description) == 2


def test_upsert_and_remove() -> None:
  catalog = NicheCatalog()
  catalog.upsert(Niche(id="space", name="Space", structure_prompt="Outline {{TITLE}}", script_prompt="Write"))
  assert catalog.get("space") is not None
  assert catalog.remove("space")
  assert catalog.get("space") is None
  assert not catalog.remove("space")


@pytest.mark.anyio
async def test_catalog_load_and_save() -> None:
  repository = MemoryRepository({NICHES_COLLECTION: [{"id": "space", "name": "Space", "customStructurePrompt": "Outline {{TITLE}}"}, {"bad": True}]})
  catalog = NicheCatalog()

  await catalog.load(repository)
  assert catalog.resolve("space").structure_prompt == "Outline {{TITLE}}"

  await catalog.save(repository)
  saved_ids = {record["id"] for record in repository.data[NICHES_COLLECTION]}
  assert saved_ids == {"caprio", "slavery", "war", "space"}


def test_structure_chunk_prompt_substitutes_placeholders() -> None:
  request = StructureChunkRequest(
    title="Kursk",
    duration_minutes=24,
    template="Outline {{TITLE}} for {{DURATION}} minutes in {{TOTAL_PARTS}} parts.",
    workflow_description=None,
    instructions=None,
    total_sections=8,
    start=1,
    end=4,
  )
  assert render_structure_chunk_prompt(request) == "Outline Kursk for 24 minutes in 8 parts.\n\nTASK: Generate PARTS 1-4. Count: 4."


def test_previous_context_uses_last_three_sections_truncated() -> None:
  structure = make_structure(5)
  structure[4] = structure[4].model_copy(update={"description": "x" * 150})
  lines = format_previous_context(structure).splitlines()
  assert len(lines) == 3
  assert lines[0] == "[Part 3]: Description of part 3..."
  assert lines[2] == "[Part 5]: " + "x" * 100 + "..."


def test_script_prompt_carries_bounds_and_structure() -> None:
  request = ScriptSectionRequest(
    title="Kursk",
    template="{{TITLE}} part {{CURRENT_PART_NUM}}/{{TOTAL_PARTS}} ({{MIN_WORDS}}-{{MAX_WORDS}} words)\n{{STRUCTURE_TEXT}}",
    structure=make_structure(2),
    index=1,
    instructions="More tanks",
    bounds=LengthBounds(min_words=100, max_words=200),
  )
  prompt = render_script_prompt(request)
  assert prompt.startswith("Kursk part 2/2 (100-200 words)\n[Part 1] Part 1: Description of part 1\n[Part 2] Part 2: Description of part 2")
  assert "USER INSTRUCTIONS: More tanks" in prompt
  assert prompt.endswith("TASK: Write the script for Part 2.")


def test_rewrite_prompt_includes_current_content() -> None:
  request = ScriptRewriteRequest(title="Kursk", structure=make_structure(3), index=0, current_content="Old text", instructions="Make it shorter")
  prompt = render_rewrite_prompt(request)
  assert "Old text" in prompt
  assert "Make it shorter" in prompt
  assert "{{" not in prompt


def test_image_prompt_sanitising() -> None:
  assert sanitize_image_prompt("A dead soldier, blood everywhere, violent KILL") == "A lifeless soldier, crimson fluid everywhere, intense eliminate"
  assert render_image_request("calm lake") == "Generate a high quality image: calm lake. Style: Cinematic digital art."


@pytest.mark.parametrize(
  "payload",
  [
    {"items": [{"title": "A"}]},
    [{"title": "A"}],
    {"structure": [{"title": "A"}]},
  ],
)
def test_structure_chunk_accepts_known_shapes(payload: object) -> None:
  assert [section.title for section in StructureChunk.model_validate(payload).items] == ["A"]
