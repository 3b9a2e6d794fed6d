"""OpenAI provider implementation using the openai SDK."""

from __future__ import annotations

import os
from typing import Final

import openai
from openai import AsyncOpenAI

from tubescript.ai.errors import GenerationFailedError, GenerationTimeoutError, RateLimitedError
from tubescript.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse

JSON_SYSTEM_PROMPT = "You are a helpful assistant that outputs valid JSON. Always respond with valid JSON only, no markdown formatting."


class OpenAIModel(AIModel):
  """OpenAI chat-completions client with JSON object mode."""

  def __init__(self, name: str, api_key: str | None = None, base_url: str | None = None, temperature: float = 0.7) -> None:
    self.name: str = name
    self._temperature = temperature

    api_key = api_key or os.getenv("OPENAI_API_KEY")
    if not api_key:
      raise ValueError("OPENAI_API_KEY environment variable is required")

    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url)

  async def generate(self, prompt: str, *, system_instruction: str | None = None, json_output: bool = False) -> ModelResponse:
    """Generate a chat completion, optionally constrained to a JSON object."""
    system = system_instruction or (JSON_SYSTEM_PROMPT if json_output else None)
    messages = []
    if system:
      messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    kwargs = {"model": self.name, "messages": messages, "temperature": self._temperature}
    if json_output:
      kwargs["response_format"] = {"type": "json_object"}

    try:
      response = await self._client.chat.completions.create(**kwargs)
    except openai.RateLimitError as exc:
      raise RateLimitedError(f"OpenAI rate limit (429): {exc}") from exc
    except openai.APITimeoutError as exc:
      raise GenerationTimeoutError(f"OpenAI request timed out: {exc}") from exc
    except openai.APIError as exc:
      raise GenerationFailedError(f"OpenAI request failed: {exc}") from exc

    content = response.choices[0].message.content or ""
    usage = None
    if response.usage:
      usage = {
        "prompt_tokens": response.usage.prompt_tokens,
        "completion_tokens": response.usage.completion_tokens,
        "total_tokens": response.usage.total_tokens,
      }
    return SimpleModelResponse(content=content, usage=usage)


class OpenAIProvider(Provider):
  """OpenAI provider."""

  _DEFAULT_MODEL: Final[str] = "gpt-4o"

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name: str = "openai"
    self._api_key = api_key
    self._base_url = base_url

  def get_model(self, model: str | None = None) -> AIModel:
    """Return an OpenAI model client."""
    return OpenAIModel(model or self._DEFAULT_MODEL, api_key=self._api_key, base_url=self._base_url)
