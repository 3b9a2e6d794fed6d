"""Base interfaces for AI providers and models."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol


class ModelResponse(Protocol):
  """Response contract for model outputs."""

  content: str
  usage: dict[str, int] | None


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None


@dataclass
class ImageResponse:
  """Raw image bytes returned by an image model."""

  data: bytes
  mime_type: str = "image/png"

  @property
  def data_url(self) -> str:
    encoded = base64.b64encode(self.data).decode("ascii")
    return f"data:{self.mime_type};base64,{encoded}"


class AIModel(ABC):
  """Abstract base class for AI models."""

  name: str
  supports_images: bool = False

  @abstractmethod
  async def generate(self, prompt: str, *, system_instruction: str | None = None, json_output: bool = False) -> ModelResponse:
    """Generate a response for the given prompt."""

  async def generate_image(self, prompt: str, *, aspect_ratio: str = "16:9") -> ImageResponse | None:
    """Generate one image; returns None when the provider produced no image part."""
    raise RuntimeError(f"Model '{self.name}' does not support image generation.")


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
