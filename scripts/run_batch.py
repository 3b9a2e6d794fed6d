"""Generate structures and scripts for one topic from the command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure repo root is on sys.path so local imports resolve before site-packages.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from tubescript.ai.orchestrator import ScriptOrchestrator  # noqa: E402
from tubescript.config import get_settings  # noqa: E402
from tubescript.core.logging import initialize_logging  # noqa: E402
from tubescript.jobs.export import render_script_text  # noqa: E402
from tubescript.jobs.models import TopicRequest, ValidationFailedError, safe_download_name  # noqa: E402
from tubescript.jobs.niches import NicheCatalog  # noqa: E402
from tubescript.jobs.notices import NoticeBoard  # noqa: E402
from tubescript.jobs.store import JobStore  # noqa: E402
from tubescript.storage.fallback_repo import build_repository  # noqa: E402

logger = logging.getLogger("tubescript.scripts.run_batch")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description=__doc__)
  parser.add_argument("title", help="Base topic title")
  parser.add_argument("--niche", default="caprio", help="Niche id or name (default: caprio)")
  parser.add_argument("--duration", type=int, default=None, help="Target duration in minutes (default: niche default)")
  parser.add_argument("--structures", type=int, default=1, help="Number of structure variants")
  parser.add_argument("--scripts", type=int, default=1, help="Number of script variants per structure")
  parser.add_argument("--instructions", default=None, help="Free-text instructions for structure generation")
  parser.add_argument("--script-instructions", default=None, help="Free-text instructions for script generation")
  parser.add_argument("--model", default=None, help="Text model id (default: TUBESCRIPT_DEFAULT_MODEL)")
  parser.add_argument("--structure-only", action="store_true", help="Stop after generating structures")
  parser.add_argument("--out", default="./exports", help="Directory for plain-text exports")
  return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
  settings = get_settings()
  notices = NoticeBoard()
  repository = build_repository(settings, notices=notices)
  store = JobStore(repository, notices=notices)
  await store.load()

  catalog = NicheCatalog()
  await catalog.load(repository)
  niche = catalog.resolve(args.niche)

  try:
    request = TopicRequest.from_input(
      {
        "title": args.title,
        "niche_id": niche.id,
        "duration_minutes": args.duration if args.duration is not None else niche.default_duration,
        "structure_variants": args.structures,
        "script_variants": args.scripts,
        "instructions": args.instructions,
        "model": args.model,
      }
    )
  except ValidationFailedError as exc:
    for error in exc.errors:
      print(f"error: {error}", file=sys.stderr)
    return 2

  orchestrator = ScriptOrchestrator(store=store, catalog=catalog, notices=notices, settings=settings)
  jobs = await orchestrator.submit_topic(request)
  print(f"Created {len(jobs)} jobs in batch {jobs[0].batch_id}")

  if not args.structure_only:
    await orchestrator.generate_scripts([job.id for job in jobs], instructions=args.script_instructions, model=args.model)

    out_dir = Path(args.out).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    for job in store.batch(jobs[0].batch_id):
      text = render_script_text(job)
      if not text:
        continue
      path = out_dir / f"{safe_download_name(job.filename or 'script')}.txt"
      path.write_text(text, encoding="utf-8")
      print(f"Wrote {path}")

  for notice in notices.notices:
    print(f"[{notice.level}] {notice.message}")
  print(f"Estimated cost: ${orchestrator.total_cost:.3f}")
  return 0


def main(argv: list[str] | None = None) -> None:
  args = _parse_args(argv)
  initialize_logging(get_settings())
  sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
  main()
