"""Retry logic with exponential backoff for rate-limited provider calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tubescript.ai.errors import GenerationFailedError, is_rate_limit_error

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 2.0

Sleep = Callable[[float], Awaitable[Any]]


def backoff_delays(attempts: int = DEFAULT_ATTEMPTS, initial_delay: float = DEFAULT_INITIAL_DELAY) -> list[float]:
  """Return the delay schedule, doubling from the initial delay (2s, 4s, 8s)."""
  return [initial_delay * (2**index) for index in range(attempts)]


async def retry_with_backoff(
  func: Callable[..., Awaitable[T]],
  *args: Any,
  attempts: int = DEFAULT_ATTEMPTS,
  initial_delay: float = DEFAULT_INITIAL_DELAY,
  sleep: Sleep = asyncio.sleep,
  **kwargs: Any,
) -> T:
  """
  Execute a coroutine function, retrying only on rate-limit errors.

  Non rate-limit errors propagate immediately. When every retry is used up the
  last rate-limit error is chained onto a GenerationFailedError.
  """
  delays = backoff_delays(attempts, initial_delay)

  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      if not is_rate_limit_error(e):
        raise
      logger.warning("Retry attempt %s/%s needed. Error: %s. Retrying in %ss...", attempt + 1, len(delays), e, delay)
      await sleep(delay)

  # Final attempt
  try:
    return await func(*args, **kwargs)
  except Exception as e:
    if not is_rate_limit_error(e):
      raise
    raise GenerationFailedError(f"Rate limit persisted after {attempts} retries: {e}") from e
