"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*|\s*```\s*$")


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding ```json ... ``` markdown fence."""
  return _FENCE_RE.sub("", raw).strip()


def extract_outer_span(raw: str) -> str | None:
  """Return the text from the first opening bracket to the last matching closing one."""
  starts = [index for index in (raw.find("{"), raw.find("[")) if index != -1]
  if not starts:
    return None
  start = min(starts)
  closer = "}" if raw[start] == "{" else "]"
  end = raw.rfind(closer)
  if end <= start:
    return None
  return raw[start : end + 1]


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON with minimal recovery to keep LLM retries low."""
  last_error: json.JSONDecodeError | None = None
  text = strip_json_fences(raw)

  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return json.loads(text)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Keep only the outermost object/array to ignore chatter around it.
  candidate = extract_outer_span(text)

  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Strip trailing commas that commonly appear in LLM output.
  cleaned = _strip_trailing_commas(candidate)

  try:
    return json.loads(cleaned)
  except json.JSONDecodeError as exc:
    last_error = exc

  # The outer span can swallow trailing text containing brackets; fall back to the first balanced block.
  balanced = _extract_balanced_block(text)
  if balanced is not None and balanced != candidate:
    try:
      return json.loads(_strip_trailing_commas(balanced))
    except json.JSONDecodeError as exc:
      last_error = exc

  raise last_error


def _extract_balanced_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array for recovery parsing."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1

      continue

    if in_string:
      if escape:
        escape = False
        continue

      if char == "\\":
        escape = True
        continue

      if char == '"':
        in_string = False

      continue

    if char == '"':
      in_string = True
      continue

    if char in "{[":
      depth += 1
      continue

    if char in "}]":
      depth -= 1

      if depth == 0:
        return raw[start_index : index + 1]

  return None


def _strip_trailing_commas(raw: str) -> str:
  """Remove trailing commas before closing brackets for lenient parsing."""
  return _TRAILING_COMMA_RE.sub(r"\1", raw)
