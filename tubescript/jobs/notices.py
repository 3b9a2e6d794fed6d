"""User-visible notices raised by generation and persistence failures."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

logger = logging.getLogger(__name__)

NoticeLevel = Literal["info", "warning", "error"]

_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@dataclass(frozen=True)
class Notice:
  level: NoticeLevel
  message: str
  job_id: int | None = None
  section_index: int | None = None
  created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NoticeBoard:
  """Collects notices in memory and forwards them to an optional listener."""

  def __init__(self, listener: Callable[[Notice], None] | None = None) -> None:
    self._notices: list[Notice] = []
    self._listener = listener

  def push(self, level: NoticeLevel, message: str, *, job_id: int | None = None, section_index: int | None = None) -> Notice:
    notice = Notice(level=level, message=message, job_id=job_id, section_index=section_index)
    self._notices.append(notice)
    logger.log(_LOG_LEVELS[level], "Notice (job=%s section=%s): %s", job_id, section_index, message)
    if self._listener is not None:
      self._listener(notice)
    return notice

  def info(self, message: str, **kwargs: int | None) -> Notice:
    return self.push("info", message, **kwargs)

  def warning(self, message: str, **kwargs: int | None) -> Notice:
    return self.push("warning", message, **kwargs)

  def error(self, message: str, **kwargs: int | None) -> Notice:
    return self.push("error", message, **kwargs)

  @property
  def notices(self) -> list[Notice]:
    return list(self._notices)

  def for_job(self, job_id: int) -> list[Notice]:
    return [notice for notice in self._notices if notice.job_id == job_id]

  def clear(self) -> None:
    self._notices.clear()
