"""Error taxonomy and classification helpers for generation calls."""

from __future__ import annotations

from typing import Iterable


class GenerationError(RuntimeError):
  """Base class for failures raised around provider calls."""


class RateLimitedError(GenerationError):
  """Provider signalled a rate limit or exhausted quota; safe to retry later."""


class GenerationFailedError(GenerationError):
  """A generation call failed for good (non-retryable error or retries exhausted)."""


class GenerationTimeoutError(GenerationFailedError):
  """A provider call exceeded the wall-clock budget."""


class MalformedResponseError(GenerationError):
  """Provider output could not be parsed into the expected structured shape."""

  def __init__(self, message: str, *, raw: str | None = None, job_id: int | None = None, section_index: int | None = None) -> None:
    super().__init__(message)
    self.raw = raw
    self.job_id = job_id
    self.section_index = section_index

  def __str__(self) -> str:
    base = super().__str__()
    where = []
    if self.job_id is not None:
      where.append(f"job={self.job_id}")
    if self.section_index is not None:
      where.append(f"section={self.section_index}")
    if not where:
      return base
    return f"{base} ({', '.join(where)})"


_RATE_LIMIT_HINTS: tuple[str, ...] = (
  "429",
  "too many requests",
  "rate limit",
  "resource exhausted",
  "resource_exhausted",
  "quota exceeded",
  "quota",
)


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  for hint in hints:
    if hint in message:
      return True
  return False


def is_rate_limit_error(exc: BaseException) -> bool:
  """Return True when an exception indicates a rate-limit or quota failure."""
  if isinstance(exc, RateLimitedError):
    return True
  if isinstance(exc, GenerationError):
    return False
  status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
  if status == 429:
    return True
  return _match_hint(str(exc).lower(), _RATE_LIMIT_HINTS)


def describe_error(exc: BaseException) -> str:
  """Short human-readable description used in notices."""
  if isinstance(exc, GenerationTimeoutError):
    return f"timed out: {exc}"
  if isinstance(exc, RateLimitedError):
    return f"rate limited: {exc}"
  if isinstance(exc, MalformedResponseError):
    return f"malformed response: {exc}"
  message = str(exc) or exc.__class__.__name__
  return message
