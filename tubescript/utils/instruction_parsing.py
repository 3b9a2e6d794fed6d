"""Best-effort parsing of section counts and chunk sizes out of free text.

Both parsers are heuristics: a miss returns the documented default and is never
treated as an error.
"""

from __future__ import annotations

import math
import re

DEFAULT_CHUNK_SIZE = 4
MIN_SECTION_COUNT = 3
MINUTES_PER_SECTION = 3

_SECTION_COUNT_RE = re.compile(r"(\d+)\s*([a-zA-Zа-яА-ЯіїєґІЇЄҐ]+)?\s*(parts|sections|chapters|частин|розділів|структур)", re.IGNORECASE)
_CHUNK_SIZE_RE = re.compile(r"(?:по|batches of|groups of)\s*(\d+)\s*(?:частин|parts)", re.IGNORECASE)


def parse_explicit_section_count(instructions: str | None) -> int | None:
  """Return the section count a user asked for ("12 parts", "8 short chapters"), if any."""
  if not instructions:
    return None
  match = _SECTION_COUNT_RE.search(instructions)
  if match is None:
    return None
  count = int(match.group(1))
  return count if count > 0 else None


def parse_chunk_size(workflow_description: str | None, default: int = DEFAULT_CHUNK_SIZE) -> int:
  """Return the structure chunk size described by a niche workflow ("batches of 3 parts")."""
  if not workflow_description:
    return default
  match = _CHUNK_SIZE_RE.search(workflow_description)
  if match is None:
    return default
  size = int(match.group(1))
  return size if size > 0 else default


def resolve_section_count(instructions: str | None, duration_minutes: int) -> int:
  """Explicit count from the instructions, else one section per three minutes (minimum three)."""
  explicit = parse_explicit_section_count(instructions)
  if explicit is not None:
    return explicit
  return max(MIN_SECTION_COUNT, math.ceil(duration_minutes / MINUTES_PER_SECTION))
