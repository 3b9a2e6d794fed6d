"""Test configuration for importing the application package."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from tests.fakes import FakeModel, MemoryRepository, make_settings, no_sleep  # noqa: E402
from tubescript.ai.orchestrator import ScriptOrchestrator  # noqa: E402
from tubescript.jobs.niches import NicheCatalog  # noqa: E402
from tubescript.jobs.notices import NoticeBoard  # noqa: E402
from tubescript.jobs.store import JobStore  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def notices() -> NoticeBoard:
  return NoticeBoard()


@pytest.fixture
def repository() -> MemoryRepository:
  return MemoryRepository()


@pytest.fixture
def store(repository: MemoryRepository, notices: NoticeBoard) -> JobStore:
  return JobStore(repository, notices=notices)


@pytest.fixture
def catalog() -> NicheCatalog:
  return NicheCatalog()


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel()


@pytest.fixture
def orchestrator(store: JobStore, catalog: NicheCatalog, notices: NoticeBoard, fake_model: FakeModel) -> ScriptOrchestrator:
  """Orchestrator wired so every model id resolves to the same scripted fake."""
  return ScriptOrchestrator(
    store=store,
    catalog=catalog,
    notices=notices,
    settings=make_settings(),
    model_resolver=lambda _model_id: fake_model,
    sleep=no_sleep,
  )
