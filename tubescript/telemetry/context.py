"""Context helpers for correlating LLM calls with the job that triggered them."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(frozen=True)
class LlmCallContext:
  """Upstream metadata attached to every provider call."""

  agent: str
  job_id: int | None
  title: str | None
  purpose: str | None
  call_index: str | None

  def describe(self) -> str:
    return f"agent={self.agent} job={self.job_id} purpose={self.purpose} call={self.call_index}"


_CURRENT_LLM_CONTEXT: ContextVar[LlmCallContext | None] = ContextVar("llm_call_context", default=None)


def get_llm_call_context() -> LlmCallContext | None:
  """Return the active LLM call context so providers can log rich metadata."""
  return _CURRENT_LLM_CONTEXT.get()


@contextmanager
def llm_call_context(*, agent: str, job_id: int | None, title: str | None, purpose: str | None, call_index: str | None) -> Iterator[LlmCallContext]:
  """Set contextual metadata for downstream LLM calls and reset it afterward."""
  context = LlmCallContext(agent=agent, job_id=job_id, title=title, purpose=purpose, call_index=call_index)
  token = _CURRENT_LLM_CONTEXT.set(context)

  try:
    yield context

  finally:
    _CURRENT_LLM_CONTEXT.reset(token)
