"""Running estimate of provider spend."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

STRUCTURE_CALL_COST = 0.001
REFINE_CALL_COST = 0.001
SCRIPT_SECTION_COST = 0.02
IMAGE_BATCH_BASE_COST = 0.001
IMAGE_COST = 0.04
SCENE_SPLIT_COST = 0.01
PROMPT_REFINE_COST = 0.001
NICHE_ANALYSIS_CALL_COST = 0.001


def image_batch_cost(quantity: int) -> float:
  """Fixed prompt-refinement fee plus a per-image fee."""
  return IMAGE_BATCH_BASE_COST + IMAGE_COST * quantity


@dataclass(frozen=True)
class CostEntry:
  kind: str
  amount: float
  job_id: int | None = None


class CostMeter:
  """Process-wide running total of estimated spend.

  Amounts are only ever added; ``reset`` exists for session boundaries owned by
  the caller.
  """

  def __init__(self) -> None:
    self._total = 0.0
    self._entries: list[CostEntry] = []
    self._usage: list[dict[str, Any]] = []
    self._lock = threading.Lock()

  @property
  def total(self) -> float:
    return self._total

  @property
  def entries(self) -> list[CostEntry]:
    return list(self._entries)

  @property
  def usage(self) -> list[dict[str, Any]]:
    """Token usage payloads reported by providers, for audit only."""
    return list(self._usage)

  def add(self, kind: str, amount: float, *, job_id: int | None = None) -> float:
    """Add a fixed call fee and return the new total."""
    if amount < 0:
      raise ValueError("Cost increments must not be negative.")
    with self._lock:
      self._total += amount
      self._entries.append(CostEntry(kind=kind, amount=amount, job_id=job_id))
      total = self._total
    logger.debug("Cost +%.4f (%s, job=%s) total=%.4f", amount, kind, job_id, total)
    return total

  def record_usage(self, payload: dict[str, Any]) -> None:
    """Usage sink handed to agents; keeps token counts next to the fee ledger."""
    with self._lock:
      self._usage.append(dict(payload))

  def reset(self) -> None:
    with self._lock:
      self._total = 0.0
      self._entries.clear()
      self._usage.clear()
