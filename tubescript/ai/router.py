"""Routing utilities for provider/model selection."""

from __future__ import annotations

from enum import Enum

from tubescript.ai.providers.base import AIModel, Provider
from tubescript.ai.providers.gemini import GeminiProvider
from tubescript.ai.providers.openai import OpenAIProvider
from tubescript.config import get_settings


class ProviderMode(str, Enum):
  """Supported provider modes."""

  GEMINI = "gemini"
  OPENAI = "openai"


_MODEL_CACHE: dict[str, AIModel] = {}


def provider_mode_for_model(model_id: str) -> ProviderMode:
  """Gemini ids route to Gemini, everything else goes to OpenAI."""
  if model_id.strip().lower().startswith("gemini"):
    return ProviderMode.GEMINI
  return ProviderMode.OPENAI


def get_provider_for_mode(mode: str | ProviderMode) -> Provider:
  """Return a provider instance for the given mode."""
  settings = get_settings()
  provider_map: dict[str, Provider] = {
    ProviderMode.GEMINI.value: GeminiProvider(api_key=settings.gemini_api_key),
    ProviderMode.OPENAI.value: OpenAIProvider(api_key=settings.openai_api_key),
  }
  key = mode.value if isinstance(mode, ProviderMode) else mode
  try:
    return provider_map[key]
  except KeyError as exc:
    raise ValueError(f"Unsupported provider mode '{mode}'.") from exc


def get_model_for_id(model_id: str | None = None) -> AIModel:
  """Return a cached model client for the given model id."""
  resolved = (model_id or get_settings().default_model).strip()
  cached = _MODEL_CACHE.get(resolved)
  if cached is not None:
    return cached
  model = get_provider_for_mode(provider_mode_for_model(resolved)).get_model(resolved)
  _MODEL_CACHE[resolved] = model
  return model


def clear_model_cache() -> None:
  _MODEL_CACHE.clear()
