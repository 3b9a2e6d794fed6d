"""Shared data contracts for the generation pipeline."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from tubescript.jobs.models import Scene, StructureSection


def _wrap_list(data: Any, key: str) -> Any:
  """Accept a bare list, or an object whose first list value holds the items."""
  if isinstance(data, list):
    return {key: data}
  if isinstance(data, dict) and key not in data:
    for value in data.values():
      if isinstance(value, list):
        return {key: value}
  return data


class LengthBounds(BaseModel):
  """Target script length substituted into niche templates."""

  min_chars: int = 1500
  max_chars: int = 3000
  min_words: int = 300
  max_words: int = 600


class JobContext(BaseModel):
  """Context metadata for the job a provider call belongs to."""

  job_id: int | None = None
  title: str
  niche_id: str | None = None
  model: str | None = None


class StructureChunkRequest(BaseModel):
  """Inputs for one chunk of a chunked structure generation."""

  title: str
  duration_minutes: int
  template: str
  workflow_description: str | None = None
  instructions: str | None = None
  total_sections: int = Field(ge=1)
  start: int = Field(ge=1, description="1-based number of the first section in this chunk")
  end: int = Field(ge=1, description="1-based number of the last section in this chunk")
  previous: list[StructureSection] = Field(default_factory=list)

  @property
  def count(self) -> int:
    return self.end - self.start + 1

  @property
  def is_first(self) -> bool:
    return self.start == 1


class StructureChunk(BaseModel):
  """Provider output for one structure chunk.

  Accepts ``{"items": [...]}``, a bare list, or an object whose first list
  value holds the sections.
  """

  items: list[StructureSection]

  @model_validator(mode="before")
  @classmethod
  def _normalize_root(cls, data: Any) -> Any:
    return _wrap_list(data, "items")


class ScriptSectionRequest(BaseModel):
  """Inputs for a first-draft script section."""

  title: str
  template: str
  structure: list[StructureSection]
  index: int = Field(ge=0)
  instructions: str | None = None
  bounds: LengthBounds = Field(default_factory=LengthBounds)


class ScriptRewriteRequest(BaseModel):
  """Inputs for rewriting one existing script section."""

  title: str
  structure: list[StructureSection]
  index: int = Field(ge=0)
  current_content: str
  instructions: str


class ScriptDraft(BaseModel):
  """Provider output for one script section."""

  model_config = ConfigDict(populate_by_name=True)

  content: str = Field(validation_alias=AliasChoices("content", "scriptEnglish", "script"))
  content_localized: str = Field(default="", validation_alias=AliasChoices("contentLocalized", "content_localized", "scriptUkrainian"))


class StructureRefineRequest(BaseModel):
  """Inputs for a wholesale structure rewrite."""

  title: str
  structure: list[StructureSection]
  instructions: str


class ImagePromptRequest(BaseModel):
  """Inputs for turning source text into one image prompt."""

  title: str
  niche: str
  source_text: str
  instructions: str = ""


class PromptRefineRequest(BaseModel):
  """Inputs for rewriting a niche template from a change request."""

  current_prompt: str
  instructions: str


class RefinedPrompt(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  refined_prompt: str = Field(validation_alias=AliasChoices("refinedPrompt", "refined_prompt", "prompt"))


class SceneSplitRequest(BaseModel):
  """Inputs for cutting narration into illustrated segments."""

  source_text: str
  min_chars: int = Field(default=100, ge=1)
  max_chars: int = Field(default=250, ge=1)
  style: str
  instructions: str = ""

  @model_validator(mode="after")
  def _check_bounds(self) -> SceneSplitRequest:
    if self.min_chars > self.max_chars:
      raise ValueError("min_chars must not exceed max_chars")
    return self


class SceneList(BaseModel):
  scenes: list[Scene]

  @model_validator(mode="before")
  @classmethod
  def _normalize_root(cls, data: Any) -> Any:
    return _wrap_list(data, "scenes")


class KeywordRequest(BaseModel):
  """Titles to mine for search keywords."""

  titles: list[str] = Field(min_length=1)
  min_keywords: int = 3
  max_keywords: int = 5


class VisualStyleRequest(BaseModel):
  title: str
  thumbnail_url: str | None = None
  count: int = 5


class KeywordList(BaseModel):
  keywords: list[str]

  @model_validator(mode="before")
  @classmethod
  def _normalize_root(cls, data: Any) -> Any:
    return _wrap_list(data, "keywords")


class NicheTemplateRequest(BaseModel):
  """Competitor transcripts to distil into a structure or script template."""

  niche_name: str
  transcripts: list[str] = Field(min_length=1)
  target: Literal["structure", "script"]
