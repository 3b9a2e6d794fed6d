"""Prompt helpers shared by agents."""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path

from tubescript.ai.pipeline.contracts import (
  ImagePromptRequest,
  KeywordRequest,
  NicheTemplateRequest,
  PromptRefineRequest,
  SceneSplitRequest,
  ScriptRewriteRequest,
  ScriptSectionRequest,
  StructureChunkRequest,
  StructureRefineRequest,
  VisualStyleRequest,
)
from tubescript.jobs.models import StructureSection

STRUCTURE_SYSTEM_INSTRUCTION = "You are an expert story strategist. Output strictly JSON."
SCRIPT_SYSTEM_INSTRUCTION = "You are a professional scriptwriter. Return JSON."
REWRITE_SYSTEM_INSTRUCTION = "You are a professional script editor. Return JSON."
REFINE_SYSTEM_INSTRUCTION = "You are a professional script editor. JSON only."
PROMPT_ENGINEER_SYSTEM_INSTRUCTION = "You are an expert prompt engineer. JSON only."

PREVIOUS_CONTEXT_SECTIONS = 3
PREVIOUS_CONTEXT_CHARS = 100
IMAGE_SOURCE_LIMIT = 15000
TRANSCRIPT_CHAR_LIMIT = 5000

_SANITIZE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
  (re.compile("blood", re.IGNORECASE), "crimson fluid"),
  (re.compile("kill", re.IGNORECASE), "eliminate"),
  (re.compile("corpse", re.IGNORECASE), "fallen figure"),
  (re.compile("dead", re.IGNORECASE), "lifeless"),
  (re.compile("violent", re.IGNORECASE), "intense"),
)


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  """Substitute {{PLACEHOLDER}} markers verbatim."""
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)

  return rendered


@lru_cache(maxsize=32)
def _load_prompt(name: str) -> str:
  try:
    path = Path(__file__).parents[1] / "prompts" / name
    return path.read_text(encoding="utf-8").strip()
  except (FileNotFoundError, PermissionError, UnicodeDecodeError) as exc:
    raise RuntimeError(f"Failed to load prompt '{name}': {exc}") from exc


def load_template(name: str) -> str:
  """Return a bundled prompt template by file name."""
  return _load_prompt(name)


def format_structure_text(structure: list[StructureSection]) -> str:
  """Render the full structure as ``[Part N] title: description`` lines."""
  return "\n".join(f"[Part {index}] {section.title}: {section.description}" for index, section in enumerate(structure, start=1))


def format_previous_context(previous: list[StructureSection], limit: int = PREVIOUS_CONTEXT_SECTIONS) -> str:
  """Summarise the last few sections so later chunks keep continuity."""
  if not previous:
    return ""
  return "\n".join(f"[{section.title}]: {section.description[:PREVIOUS_CONTEXT_CHARS]}..." for section in previous[-limit:])


def render_structure_chunk_prompt(request: StructureChunkRequest) -> str:
  """Render one structure chunk; only the first chunk carries the user instructions."""
  base = _replace_placeholders(
    request.template,
    {"TITLE": request.title, "DURATION": str(request.duration_minutes), "TOTAL_PARTS": str(request.total_sections)},
  )
  parts = [base]
  if request.workflow_description:
    parts.append(f"[GENERAL WORKFLOW]\n{request.workflow_description}")

  if request.is_first:
    if request.instructions:
      parts.append(f"USER INSTRUCTIONS: {request.instructions}")
  else:
    parts.append(f"PREVIOUS CONTEXT:\n{format_previous_context(request.previous)}")

  parts.append(f"TASK: Generate PARTS {request.start}-{request.end}. Count: {request.count}.")
  return "\n\n".join(parts)


def render_script_prompt(request: ScriptSectionRequest) -> str:
  """Render a first-draft prompt for one script section."""
  bounds = request.bounds
  rendered = _replace_placeholders(
    request.template,
    {
      "TITLE": request.title,
      "STRUCTURE_TEXT": format_structure_text(request.structure),
      "CURRENT_PART_NUM": str(request.index + 1),
      "TOTAL_PARTS": str(len(request.structure)),
      "MIN_LENGTH": str(bounds.min_chars),
      "MAX_LENGTH": str(bounds.max_chars),
      "MIN_WORDS": str(bounds.min_words),
      "MAX_WORDS": str(bounds.max_words),
    },
  )
  parts = [rendered]
  if request.instructions:
    parts.append(f"USER INSTRUCTIONS: {request.instructions}")
  parts.append(f"TASK: Write the script for Part {request.index + 1}.")
  return "\n\n".join(parts)


def render_rewrite_prompt(request: ScriptRewriteRequest) -> str:
  """Render a rewrite prompt carrying the section's prior content."""
  return _replace_placeholders(
    load_template("rewrite_section.md"),
    {
      "TITLE": request.title,
      "CURRENT_PART_NUM": str(request.index + 1),
      "TOTAL_PARTS": str(len(request.structure)),
      "CURRENT_CONTENT": request.current_content,
      "INSTRUCTIONS": request.instructions,
    },
  )


def render_refine_prompt(request: StructureRefineRequest) -> str:
  structure_json = json.dumps([section.to_record() for section in request.structure], indent=2, ensure_ascii=False)
  return _replace_placeholders(load_template("refine_structure.md"), {"STRUCTURE_JSON": structure_json, "INSTRUCTIONS": request.instructions})


def render_image_prompt(request: ImagePromptRequest) -> str:
  """Render the image-prompt refinement request with sanitised inputs."""
  return _replace_placeholders(
    load_template("image_prompt.md"),
    {
      "TITLE": request.title,
      "NICHE": request.niche,
      "SOURCE_TEXT": sanitize_image_prompt(request.source_text[:IMAGE_SOURCE_LIMIT]),
      "INSTRUCTIONS": sanitize_image_prompt(request.instructions),
    },
  )


def sanitize_image_prompt(text: str) -> str:
  """Soften words that commonly trip image safety filters."""
  sanitized = text
  for pattern, replacement in _SANITIZE_RULES:
    sanitized = pattern.sub(replacement, sanitized)
  return sanitized


def render_image_request(prompt: str) -> str:
  return f"Generate a high quality image: {sanitize_image_prompt(prompt)}. Style: Cinematic digital art."


def render_prompt_refine(request: PromptRefineRequest) -> str:
  return _replace_placeholders(load_template("refine_prompt.md"), {"INSTRUCTIONS": request.instructions, "CURRENT_PROMPT": request.current_prompt})


def default_scene_style() -> str:
  return load_template("scene_style.md")


def render_scene_split_prompt(request: SceneSplitRequest) -> str:
  """Render the segmentation request; the style is repeated verbatim at the start of every image prompt."""
  return _replace_placeholders(
    load_template("scene_split.md"),
    {
      "STYLE": request.style.strip(),
      "INSTRUCTIONS": request.instructions,
      "MIN_CHARS": str(request.min_chars),
      "MAX_CHARS": str(request.max_chars),
      "SOURCE_TEXT": request.source_text,
    },
  )


def render_keyword_prompt(request: KeywordRequest) -> str:
  return _replace_placeholders(
    load_template("analyze_titles.md"),
    {"MIN_KEYWORDS": str(request.min_keywords), "MAX_KEYWORDS": str(request.max_keywords), "TITLES": "\n".join(request.titles)},
  )


def render_visual_style_prompt(request: VisualStyleRequest) -> str:
  thumbnail = f"\nThumbnail: {request.thumbnail_url}" if request.thumbnail_url else ""
  return _replace_placeholders(load_template("analyze_visuals.md"), {"COUNT": str(request.count), "THUMBNAIL": thumbnail, "TITLE": request.title})


def render_niche_template_prompt(request: NicheTemplateRequest) -> str:
  """Render a template-distillation request; each transcript is cut to its first few thousand characters."""
  name = "niche_structure_template.md" if request.target == "structure" else "niche_script_template.md"
  transcripts = "\n---\n".join(transcript[:TRANSCRIPT_CHAR_LIMIT] for transcript in request.transcripts)
  return _replace_placeholders(load_template(name), {"NICHE_NAME": request.niche_name, "TRANSCRIPTS": transcripts})
