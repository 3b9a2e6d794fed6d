"""Unit tests for plain-text script export."""

from __future__ import annotations

from tests.fakes import make_job
from tubescript.jobs.export import render_script_text
from tubescript.jobs.models import ScriptSection


def test_export_drops_headings_and_empty_sections() -> None:
  parts = [
    ScriptSection(id="p0", content="Part 1: The Beginning\nThe convoy left at dawn.", content_localized="Колона вирушила на світанку."),
    ScriptSection(id="p1", content="", status="failed"),
    ScriptSection(id="p2", content="## Section heading\n**Part 3**\nBy noon the bridge was gone."),
  ]
  job = make_job(1, script_parts=parts)

  assert render_script_text(job) == "The convoy left at dawn.\n\nBy noon the bridge was gone."
  assert render_script_text(job, localized=True) == "Колона вирушила на світанку."
