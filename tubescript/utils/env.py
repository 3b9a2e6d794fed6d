"""Read TubeScript settings from a local ``.env`` file."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_FILE_VARIABLE = "TUBESCRIPT_ENV_FILE"

_LINE_RE = re.compile(r"^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")


def default_env_path() -> Path:
  """``TUBESCRIPT_ENV_FILE`` when set, else ``.env`` at the repo root."""
  override = os.environ.get(ENV_FILE_VARIABLE)
  if override:
    return Path(override).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
    inner = value[1:-1]
    return inner.replace('\\"', '"') if value[0] == '"' else inner
  # Unquoted values end at an inline comment.
  return value.split(" #", 1)[0].rstrip()


def parse_env_text(text: str) -> dict[str, str]:
  """Parse ``KEY=value`` lines; comments, blank lines and malformed lines are skipped."""
  values: dict[str, str] = {}
  for number, raw_line in enumerate(text.splitlines(), start=1):
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    match = _LINE_RE.match(line)
    if match is None:
      logger.debug("Ignoring malformed .env line %s", number)
      continue
    values[match.group("key")] = _unquote(match.group("value").strip())
  return values


def load_env_file(path: Path, *, override: bool = False) -> int:
  """Apply a ``.env`` file to ``os.environ`` and return how many variables were set.

  Variables already present in the environment win unless ``override`` is set.
  """
  if not path.is_file():
    return 0

  applied = 0
  for key, value in parse_env_text(path.read_text(encoding="utf-8")).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied += 1

  if applied:
    logger.debug("Loaded %s variables from %s", applied, path)
  return applied
