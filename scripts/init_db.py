"""Create the collections table used by remote storage."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Ensure repo root is on sys.path so local imports resolve before site-packages.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from tubescript.core.database import create_tables  # noqa: E402


def main() -> None:
  asyncio.run(create_tables())
  print("OK: collections table is ready.")


if __name__ == "__main__":
  main()
