"""Unit tests for section count and chunk size heuristics."""

from __future__ import annotations

import pytest

from tubescript.utils.instruction_parsing import DEFAULT_CHUNK_SIZE, parse_chunk_size, parse_explicit_section_count, resolve_section_count


@pytest.mark.parametrize(
  ("instructions", "expected"),
  [
    ("Make it 12 parts please", 12),
    ("Split into 8 short chapters", 8),
    ("I want 6 sections", 6),
    ("Зроби 10 частин", 10),
    ("Focus on tanks", None),
    ("", None),
    (None, None),
    ("0 parts", None),
  ],
)
def test_parse_explicit_section_count(instructions: str | None, expected: int | None) -> None:
  assert parse_explicit_section_count(instructions) == expected


@pytest.mark.parametrize(
  ("workflow", "expected"),
  [
    ("Generated in batches of 3 parts.", 3),
    ("Write groups of 5 parts at a time", 5),
    ("Генерувати по 2 частини", 2),
    ("No batching hints here", DEFAULT_CHUNK_SIZE),
    (None, DEFAULT_CHUNK_SIZE),
  ],
)
def test_parse_chunk_size(workflow: str | None, expected: int) -> None:
  assert parse_chunk_size(workflow) == expected


@pytest.mark.parametrize(
  ("duration", "expected"),
  [(1, 3), (9, 3), (10, 4), (24, 8), (30, 10)],
)
def test_section_count_falls_back_to_duration(duration: int, expected: int) -> None:
  assert resolve_section_count(None, duration) == expected


def test_explicit_count_wins_over_duration() -> None:
  assert resolve_section_count("exactly 5 parts", 60) == 5
