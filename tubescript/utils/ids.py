"""Identifier utilities."""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable


class JobIdGenerator:
  """Hand out numeric job ids seeded from the wall clock.

  Ids are millisecond timestamps bumped by a counter, so every id issued by one
  generator is strictly larger than the previous one even when many jobs are
  created inside the same millisecond.
  """

  def __init__(self, clock: Callable[[], float] = time.time) -> None:
    self._clock = clock
    self._last = 0
    self._lock = threading.Lock()

  def next_id(self) -> int:
    """Return a new unique job id."""
    with self._lock:
      seed = int(self._clock() * 1000)
      self._last = max(seed, self._last + 1)
      return self._last

  def batch_id(self) -> str:
    """Return a batch identifier shared by every job of one topic request."""
    return f"batch-{int(self._clock() * 1000)}-{uuid.uuid4().hex[:6]}"


DEFAULT_GENERATOR = JobIdGenerator()


def generate_image_id() -> str:
  """Return a new generated-image identifier."""
  return uuid.uuid4().hex
