"""Built-in and user-defined content niches."""

from __future__ import annotations

import logging

from tubescript.ai.agents.prompts import load_template
from tubescript.jobs.models import Niche
from tubescript.storage.collections_repo import NICHES_COLLECTION, CollectionsRepository

logger = logging.getLogger(__name__)


def default_niches() -> list[Niche]:
  """Return fresh copies of the built-in niches."""
  return [
    Niche(
      id="caprio",
      name="Judge Caprio Stories",
      default_duration=8,
      structure_prompt=load_template("caprio_structure.md"),
      script_prompt=load_template("caprio_script.md"),
      workflow_description="Emotional stories from the courtroom. Focus on dialogue and human emotion.",
    ),
    Niche(
      id="slavery",
      name="Slavery Stories",
      default_duration=30,
      structure_prompt=load_template("slavery_structure.md"),
      script_prompt=load_template("slavery_script.md"),
      workflow_description="First-person historical documentary stories. Historical accuracy and a somber atmosphere matter most.",
    ),
    Niche(
      id="war",
      name="War Stories",
      default_duration=10,
      structure_prompt=load_template("war_structure.md"),
      script_prompt=load_template("war_script.md"),
      workflow_description="Hyper-realism. Tactics, logistics and the psychology of ordinary people, minimal pathos. Generated in batches of 4 parts.",
    ),
  ]


class NicheCatalog:
  """Defaults merged with the user's stored niches."""

  def __init__(self, custom: list[Niche] | None = None) -> None:
    self._defaults = default_niches()
    self._niches: dict[str, Niche] = {}
    self._merge(custom or [])

  def _merge(self, custom: list[Niche]) -> None:
    merged = {niche.id: niche for niche in self._defaults}
    defaults = dict(merged)
    for niche in custom:
      fallback = defaults.get(niche.id)
      if fallback is not None:
        # Stored niches without templates keep the built-in ones.
        niche = niche.model_copy(
          update={
            "structure_prompt": niche.structure_prompt if niche.structure_prompt is not None else fallback.structure_prompt,
            "script_prompt": niche.script_prompt if niche.script_prompt is not None else fallback.script_prompt,
            "workflow_description": niche.workflow_description if niche.workflow_description is not None else fallback.workflow_description,
          }
        )
      merged[niche.id] = niche
    self._niches = merged

  def all(self) -> list[Niche]:
    return list(self._niches.values())

  def get(self, niche_id: str) -> Niche | None:
    return self._niches.get(niche_id)

  def resolve(self, niche_ref: str) -> Niche:
    """Find the niche for a job: exact id, then name, then a built-in id contained in the reference, then the first built-in."""
    exact = self._niches.get(niche_ref)
    if exact is not None:
      return exact

    for niche in self._niches.values():
      if niche.name == niche_ref:
        return niche

    lowered = niche_ref.lower()
    for niche in self._defaults:
      if niche.id in lowered:
        return self._niches[niche.id]

    logger.warning("Unknown niche '%s'; falling back to '%s'", niche_ref, self._defaults[0].id)
    return self._niches[self._defaults[0].id]

  def upsert(self, niche: Niche) -> None:
    custom = [n for n in self._niches.values() if n.id != niche.id]
    custom.append(niche)
    self._merge(custom)

  def remove(self, niche_id: str) -> bool:
    if niche_id not in self._niches:
      return False
    remaining = [n for n in self._niches.values() if n.id != niche_id]
    self._merge(remaining)
    # Built-ins come back after a merge; removing one only resets it to the default.
    return True

  async def load(self, repository: CollectionsRepository) -> None:
    records = await repository.load(NICHES_COLLECTION)
    niches: list[Niche] = []
    for record in records:
      try:
        niches.append(Niche.model_validate(record))
      except ValueError as exc:
        logger.warning("Skipping unreadable niche record: %s", exc)
    self._merge(niches)

  async def save(self, repository: CollectionsRepository) -> None:
    await repository.save(NICHES_COLLECTION, [niche.to_record() for niche in self._niches.values()])
