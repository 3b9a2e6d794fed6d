"""Token bucket used to space out bursty provider calls."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

_EPSILON = 1e-9


class TokenBucket:
  """Async token bucket.

  With the default capacity of one token and a two second refill, consecutive
  ``acquire`` calls are spaced at least two seconds apart while the first call
  goes through immediately.
  """

  def __init__(
    self,
    *,
    capacity: int = 1,
    refill_seconds: float = 2.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
  ) -> None:
    if capacity <= 0:
      raise ValueError("capacity must be positive")
    if refill_seconds < 0:
      raise ValueError("refill_seconds must be zero or positive")
    self._capacity = capacity
    self._refill_seconds = refill_seconds
    self._clock = clock
    self._sleep = sleep
    self._tokens = float(capacity)
    self._updated_at = clock()
    self._lock = asyncio.Lock()

  @property
  def capacity(self) -> int:
    return self._capacity

  def _refill(self) -> None:
    now = self._clock()
    elapsed = max(0.0, now - self._updated_at)
    self._updated_at = now
    if self._refill_seconds == 0:
      self._tokens = float(self._capacity)
      return
    self._tokens = min(float(self._capacity), self._tokens + elapsed / self._refill_seconds)

  async def acquire(self) -> float:
    """Wait for a token and return how long the caller was held back."""
    waited = 0.0
    async with self._lock:
      self._refill()
      while self._tokens < 1.0 - _EPSILON:
        delay = (1.0 - self._tokens) * self._refill_seconds
        logger.debug("Rate limiter holding call for %.2fs", delay)
        await self._sleep(delay)
        waited += delay
        self._refill()
      self._tokens = max(0.0, self._tokens - 1.0)
    return waited
