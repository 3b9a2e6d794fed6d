"""Plain-text export of generated scripts."""

from __future__ import annotations

import re

from tubescript.jobs.models import Job

_HEADING_RE = re.compile(r"^(Part\s+\d+|Section\s+\d+|#|\*\*Part).*", re.IGNORECASE | re.MULTILINE)


def render_script_text(job: Job, *, localized: bool = False) -> str:
  """Join section contents with blank lines, dropping heading lines and empty sections."""
  chunks: list[str] = []
  for section in job.script_parts:
    text = section.content_localized if localized else section.content
    text = _HEADING_RE.sub("", text or "").strip()
    if text:
      chunks.append(text)
  return "\n\n".join(chunks)
