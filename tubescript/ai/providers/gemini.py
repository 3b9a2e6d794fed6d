"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
import os
from typing import Final

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from tubescript.ai.errors import GenerationFailedError, RateLimitedError, is_rate_limit_error
from tubescript.ai.providers.base import AIModel, ImageResponse, ModelResponse, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


def _translate_api_error(exc: genai_errors.APIError) -> Exception:
  if exc.code == 429 or is_rate_limit_error(exc):
    return RateLimitedError(f"Gemini rate limit ({exc.code}): {exc}")
  return GenerationFailedError(f"Gemini request failed ({exc.code}): {exc}")


class GeminiModel(AIModel):
  """Gemini client for text and image generation."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name: str = name
    self.supports_images = "image" in name

    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str, *, system_instruction: str | None = None, json_output: bool = False) -> ModelResponse:
    """Generate a text response from Gemini."""
    config = types.GenerateContentConfig(
      system_instruction=system_instruction,
      response_mime_type="application/json" if json_output else None,
    )
    try:
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except genai_errors.APIError as exc:
      raise _translate_api_error(exc) from exc

    usage = None
    if response.usage_metadata:
      usage = {
        "prompt_tokens": response.usage_metadata.prompt_token_count or 0,
        "completion_tokens": response.usage_metadata.candidates_token_count or 0,
        "total_tokens": response.usage_metadata.total_token_count or 0,
      }
    return SimpleModelResponse(content=response.text or "", usage=usage)

  async def generate_image(self, prompt: str, *, aspect_ratio: str = "16:9") -> ImageResponse | None:
    """Generate one image and return the first inline image part."""
    config = types.GenerateContentConfig(
      response_modalities=["IMAGE"],
      image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
      safety_settings=[
        types.SafetySetting(
          category=types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
          threshold=types.HarmBlockThreshold.BLOCK_ONLY_HIGH,
        )
      ],
    )
    try:
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except genai_errors.APIError as exc:
      raise _translate_api_error(exc) from exc

    for candidate in response.candidates or []:
      if candidate.content is None:
        continue
      for part in candidate.content.parts or []:
        if part.inline_data is not None and part.inline_data.data:
          return ImageResponse(data=part.inline_data.data, mime_type=part.inline_data.mime_type or "image/png")

    logger.warning("Gemini image model %s returned no image part", self.name)
    return None


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a Gemini model client."""
    return GeminiModel(model or self._DEFAULT_MODEL, api_key=self._api_key)
