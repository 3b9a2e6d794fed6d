"""Base class for AI agents."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from tubescript.ai.backoff import DEFAULT_ATTEMPTS, DEFAULT_INITIAL_DELAY, retry_with_backoff
from tubescript.ai.errors import GenerationTimeoutError, MalformedResponseError
from tubescript.ai.json_parser import parse_json_with_fallback
from tubescript.ai.pipeline.contracts import JobContext
from tubescript.ai.providers.base import AIModel, ModelResponse
from tubescript.telemetry.context import llm_call_context

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
ModelT = TypeVar("ModelT", bound=BaseModel)
UsageSink = Callable[[dict[str, Any]], None] | None
Sleep = Callable[[float], Awaitable[Any]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallPolicy:
  """Timeout and retry settings applied to every provider call an agent makes."""

  timeout_seconds: float | None = 60.0
  retry_attempts: int = DEFAULT_ATTEMPTS
  retry_initial_delay: float = DEFAULT_INITIAL_DELAY


class BaseAgent(ABC, Generic[InputT, OutputT]):
  """Base agent with shared dependencies."""

  name: str

  def __init__(self, *, model: AIModel, policy: CallPolicy | None = None, use: UsageSink = None, sleep: Sleep = asyncio.sleep) -> None:
    self._model = model
    self._policy = policy or CallPolicy()
    self._usage_sink = use
    self._sleep = sleep

  @property
  def model_name(self) -> str:
    return getattr(self._model, "name", "unknown")

  @abstractmethod
  async def run(self, input_data: InputT, ctx: JobContext) -> OutputT:
    """Run the agent on input data."""

  async def _with_timeout(self, awaitable: Awaitable[Any]) -> Any:
    timeout = self._policy.timeout_seconds
    if not timeout:
      return await awaitable
    try:
      return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
      raise GenerationTimeoutError(f"{self.name} call to {self.model_name} timed out after {timeout:g}s") from exc

  async def _generate_once(self, prompt: str, system_instruction: str | None, json_output: bool) -> ModelResponse:
    return await self._with_timeout(self._model.generate(prompt, system_instruction=system_instruction, json_output=json_output))

  async def _call(self, prompt: str, *, ctx: JobContext, purpose: str, call_index: str, system_instruction: str | None = None, json_output: bool = True) -> ModelResponse:
    """Issue one logical provider call with timeout, rate-limit retries and usage reporting."""
    # Stamp the provider call with agent context for audit logging.
    with llm_call_context(agent=self.name, job_id=ctx.job_id, title=ctx.title, purpose=purpose, call_index=call_index) as call_ctx:
      logger.info("%s -> %s (%s)", self.name, self.model_name, call_ctx.describe())
      response = await retry_with_backoff(
        self._generate_once,
        prompt,
        system_instruction,
        json_output,
        attempts=self._policy.retry_attempts,
        initial_delay=self._policy.retry_initial_delay,
        sleep=self._sleep,
      )

    self._record_usage(agent=self.name, purpose=purpose, call_index=call_index, usage=response.usage)
    return response

  def _record_usage(self, *, agent: str, purpose: str, call_index: str, usage: dict[str, int] | None) -> None:
    if not usage or not self._usage_sink:
      return
    payload = {
      "model": self.model_name,
      "agent": agent,
      "purpose": purpose,
      "call_index": call_index,
      **usage,
    }
    self._usage_sink(payload)

  def _parse(self, raw: str, schema: type[ModelT], *, ctx: JobContext, section_index: int | None = None) -> ModelT:
    """Parse provider text into a typed model, raising MalformedResponseError on any mismatch."""
    try:
      payload = parse_json_with_fallback(raw)
    except json.JSONDecodeError as exc:
      logger.error("%s failed to parse JSON: %s", self.name, exc)
      raise MalformedResponseError(f"{self.name} returned invalid JSON: {exc}", raw=raw, job_id=ctx.job_id, section_index=section_index) from exc

    try:
      return schema.model_validate(payload)
    except ValidationError as exc:
      logger.error("%s returned an unexpected shape: %s", self.name, exc)
      raise MalformedResponseError(f"{self.name} returned an unexpected shape: {exc.error_count()} validation errors", raw=raw, job_id=ctx.job_id, section_index=section_index) from exc
