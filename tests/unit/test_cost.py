"""Unit tests for the cost meter."""

from __future__ import annotations

import pytest

from tubescript.ai.utils.cost import IMAGE_COST, SCRIPT_SECTION_COST, CostMeter, image_batch_cost


def test_add_accumulates_and_records_entries() -> None:
  meter = CostMeter()
  meter.add("structure", 0.001, job_id=1)
  total = meter.add("script_section", SCRIPT_SECTION_COST, job_id=1)

  assert total == pytest.approx(0.021)
  assert meter.total == pytest.approx(0.021)
  assert [entry.kind for entry in meter.entries] == ["structure", "script_section"]


def test_negative_amounts_are_rejected() -> None:
  meter = CostMeter()
  with pytest.raises(ValueError):
    meter.add("refund", -0.5)
  assert meter.total == 0.0


def test_image_batch_cost() -> None:
  assert image_batch_cost(4) == pytest.approx(0.001 + 4 * IMAGE_COST)


def test_usage_payloads_are_copied_and_reset_clears_everything() -> None:
  meter = CostMeter()
  payload = {"agent": "ScriptWriter", "input_tokens": 12}
  meter.record_usage(payload)
  payload["input_tokens"] = 99
  meter.add("refine", 0.001)

  assert meter.usage == [{"agent": "ScriptWriter", "input_tokens": 12}]

  meter.reset()
  assert meter.total == 0.0
  assert meter.entries == []
  assert meter.usage == []
