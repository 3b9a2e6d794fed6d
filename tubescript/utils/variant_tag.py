"""Encode and decode the ``[Ver S-K]`` variant tag carried by display titles."""

from __future__ import annotations

import re
from dataclasses import dataclass

VARIANT_TAG_PATTERN = re.compile(r"(.*)\s\[Ver\s(\d+)-(\d+)\]")
VARIANT_TAG_MARKER = " [Ver"
UNVERSIONED = -1


@dataclass(frozen=True)
class VariantIdentity:
  """Structured identity of one job inside a batch."""

  base_title: str
  struct_idx: int = UNVERSIONED
  script_idx: int = UNVERSIONED

  @property
  def is_versioned(self) -> bool:
    return self.struct_idx != UNVERSIONED


def encode_title(base_title: str, struct_idx: int, script_idx: int, struct_total: int, script_total: int) -> str:
  """Append the variant tag when more than one variant of either kind exists."""
  if struct_total > 1 or script_total > 1:
    return f"{base_title} [Ver {struct_idx}-{script_idx}]"
  return base_title


def decode_title(title: str) -> VariantIdentity:
  """Recover the variant identity from a display title.

  Titles without a tag decode to the unversioned sentinel (-1, -1).
  """
  match = VARIANT_TAG_PATTERN.fullmatch(title)
  if match is None:
    return VariantIdentity(base_title=title)
  return VariantIdentity(base_title=match.group(1), struct_idx=int(match.group(2)), script_idx=int(match.group(3)))


def has_variant_marker(title: str) -> bool:
  """Return True when a base title would be ambiguous once tagged."""
  return VARIANT_TAG_MARKER in title
