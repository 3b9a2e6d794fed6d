"""Persisted job, niche and request models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from tubescript.utils.variant_tag import VariantIdentity, decode_title, has_variant_marker

SectionStatus = Literal["queued", "generating", "done", "failed"]

_FILENAME_RE = re.compile(r"[^a-z0-9а-яіїєґ ]", re.IGNORECASE)
_DOWNLOAD_NAME_RE = re.compile(r"[^a-z0-9а-яіїєґ_\- ]", re.IGNORECASE)
FILENAME_MAX_LENGTH = 50


class ValidationFailedError(ValueError):
  """Caller-supplied request values were rejected before any job was created."""

  def __init__(self, message: str, errors: list[str] | None = None) -> None:
    super().__init__(message)
    self.errors = errors or []


class JobBusyError(RuntimeError):
  """The job already has generation in flight that the requested change would disturb."""


def make_filename(title: str) -> str:
  """Sanitise a display title into an export file stem."""
  return _FILENAME_RE.sub("_", title).strip()[:FILENAME_MAX_LENGTH]


def safe_download_name(name: str) -> str:
  return _DOWNLOAD_NAME_RE.sub("_", name)


def _utcnow() -> datetime:
  return datetime.now(timezone.utc)


class CamelModel(BaseModel):
  """Base model persisted with camelCase keys."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

  def to_record(self) -> dict[str, Any]:
    return self.model_dump(mode="json", by_alias=True)


class StructureSection(CamelModel):
  """One ordered unit of an outline."""

  title: str
  title_localized: str = Field(default="", validation_alias=AliasChoices("titleLocalized", "title_localized", "titleUa"))
  description: str = ""
  description_localized: str = Field(default="", validation_alias=AliasChoices("descriptionLocalized", "description_localized", "descriptionUa"))
  estimated_duration: str = ""

  @field_validator("estimated_duration", mode="before")
  @classmethod
  def _coerce_duration(cls, value: Any) -> str:
    if value is None:
      return ""
    return str(value)


class Scene(CamelModel):
  """One narrated segment of a script section paired with its image prompt."""

  segment_text: str
  segment_text_localized: str = Field(default="", validation_alias=AliasChoices("segmentTextLocalized", "segment_text_localized", "segmentTextUa"))
  image_prompt: str
  image_prompt_localized: str = Field(default="", validation_alias=AliasChoices("imagePromptLocalized", "image_prompt_localized", "imagePromptUa"))


class ScriptSection(CamelModel):
  """Narrative content generated for one structure section."""

  id: str
  section_title: str = ""
  content: str = Field(default="", validation_alias=AliasChoices("content", "contentEn"))
  content_localized: str = Field(default="", validation_alias=AliasChoices("contentLocalized", "content_localized", "contentUa"))
  status: SectionStatus = "queued"
  error: str | None = None
  scenes: list[Scene] = Field(default_factory=list, validation_alias=AliasChoices("scenes", "warScenes"))

  @model_validator(mode="before")
  @classmethod
  def _legacy_generating_flag(cls, data: Any) -> Any:
    # Records written before the status field only carried the boolean flag.
    if isinstance(data, dict) and "status" not in data and "isGenerating" in data:
      data = dict(data)
      data["status"] = "generating" if data.get("isGenerating") else "done"
    return data

  @computed_field(alias="isGenerating")  # type: ignore[prop-decorator]
  @property
  def is_generating(self) -> bool:
    return self.status == "generating"


def placeholder_section(job_id: int, index: int, structure_section: StructureSection) -> ScriptSection:
  return ScriptSection(id=f"proj-{job_id}-part-{index}", section_title=structure_section.title, status="queued")


class GeneratedImage(CamelModel):
  id: str
  url: str
  prompt: str
  aspect_ratio: str = "16:9"
  created_at: datetime = Field(default_factory=_utcnow)


class JobConfig(CamelModel):
  """Generation settings copied from the topic request onto every job."""

  niche_id: str
  duration_minutes: int
  structure_variants: int = 1
  script_variants: int = 1
  release_date: str | None = None
  model: str | None = None


class Job(CamelModel):
  """Unit of generation work and persistence (one concrete variant of a topic)."""

  id: int
  batch_id: str
  title: str
  config: JobConfig
  structure: list[StructureSection] = Field(default_factory=list)
  script_parts: list[ScriptSection] = Field(default_factory=list)
  structure_generating: bool = Field(default=False, validation_alias=AliasChoices("structureGenerating", "structure_generating", "isStructureLoading"))
  script_generating: bool = Field(default=False, validation_alias=AliasChoices("scriptGenerating", "script_generating", "isScriptGenerating"))
  completed: bool = Field(default=False, validation_alias=AliasChoices("completed", "isCompleted"))
  structure_instructions: str | None = None
  script_instructions: str | None = None
  image_instructions: str | None = None
  generated_images: list[GeneratedImage] = Field(default_factory=list)
  created_at: datetime = Field(default_factory=_utcnow)

  _variant: VariantIdentity | None = PrivateAttr(default=None)
  _variant_source: str | None = PrivateAttr(default=None)

  def model_post_init(self, __context: Any) -> None:
    self._variant = decode_title(self.title)
    self._variant_source = self.title

  @property
  def variant(self) -> VariantIdentity:
    """Structured identity decoded from the display title."""
    if self._variant is None or self._variant_source != self.title:
      self._variant = decode_title(self.title)
      self._variant_source = self.title
    return self._variant

  @computed_field  # type: ignore[prop-decorator]
  @property
  def filename(self) -> str:
    return make_filename(self.title)

  def group_key(self) -> tuple[str, str, int] | tuple[str, int]:
    """Key shared by every job that must receive the same structure."""
    variant = self.variant
    if not variant.is_versioned:
      return ("job", self.id)
    return (self.batch_id, variant.base_title, variant.struct_idx)


class PromptVersion(CamelModel):
  """Snapshot of a niche's templates taken before they were changed."""

  structure_prompt: str | None = None
  script_prompt: str | None = None
  reason: str = ""
  created_at: datetime = Field(default_factory=_utcnow)


class Niche(CamelModel):
  """Content niche with its prompt templates."""

  id: str
  name: str
  default_duration: int = 10
  default_structure_variants: int = 1
  default_script_variants: int = 1
  structure_prompt: str | None = Field(default=None, validation_alias=AliasChoices("structurePrompt", "customStructurePrompt"))
  script_prompt: str | None = Field(default=None, validation_alias=AliasChoices("scriptPrompt", "customScriptPrompt"))
  workflow_description: str | None = None
  prompt_versions: list[PromptVersion] = Field(default_factory=list)
  analyzed_keywords: list[str] = Field(default_factory=list)
  analyzed_titles: list[str] = Field(default_factory=list)


class TopicRequest(CamelModel):
  """User request for one topic and its variant counts. Immutable once submitted."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

  title: str
  niche_id: str
  duration_minutes: int = Field(gt=0, strict=True)
  structure_variants: int = Field(default=1, gt=0, strict=True)
  script_variants: int = Field(default=1, gt=0, strict=True)
  instructions: str | None = None
  model: str | None = None
  release_date: str | None = None
  start_generation: bool = True

  @field_validator("title")
  @classmethod
  def _validate_title(cls, value: str) -> str:
    value = value.strip()
    if not value:
      raise ValueError("title must not be empty")
    if has_variant_marker(value):
      raise ValueError("title must not contain the reserved ' [Ver' marker")
    return value

  @field_validator("niche_id")
  @classmethod
  def _validate_niche(cls, value: str) -> str:
    value = value.strip()
    if not value:
      raise ValueError("niche_id must not be empty")
    return value

  @classmethod
  def from_input(cls, payload: dict[str, Any]) -> TopicRequest:
    """Validate raw input, raising ValidationFailedError with readable messages."""
    try:
      return cls.model_validate(payload)
    except ValidationError as exc:
      errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
      raise ValidationFailedError("Invalid topic request: " + "; ".join(errors), errors) from exc
