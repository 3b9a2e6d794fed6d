"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from tubescript.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the TubeScript engine."""

  environment: str
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  data_dir: str
  pg_dsn: str | None
  pg_connect_timeout: int
  storage_owner_id: str | None
  openai_api_key: str | None
  gemini_api_key: str | None
  default_model: str
  image_model: str
  image_prompt_model: str
  provider_timeout_seconds: float
  retry_attempts: int
  retry_initial_delay_seconds: float
  image_interval_seconds: float
  script_min_chars: int
  script_max_chars: int
  script_min_words: int
  script_max_words: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _non_negative_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or positive.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("TUBESCRIPT_ENV", "development").lower()
  debug = _parse_bool(os.getenv("TUBESCRIPT_DEBUG"))

  log_backup_count = int(os.getenv("TUBESCRIPT_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("TUBESCRIPT_LOG_BACKUP_COUNT must be zero or a positive integer.")

  retry_attempts = int(os.getenv("TUBESCRIPT_RETRY_ATTEMPTS", "3"))
  if retry_attempts < 0:
    raise ValueError("TUBESCRIPT_RETRY_ATTEMPTS must be zero or a positive integer.")

  script_min_chars = _positive_int("TUBESCRIPT_SCRIPT_MIN_CHARS", "1500")
  script_max_chars = _positive_int("TUBESCRIPT_SCRIPT_MAX_CHARS", "3000")
  if script_max_chars < script_min_chars:
    raise ValueError("TUBESCRIPT_SCRIPT_MAX_CHARS must not be lower than TUBESCRIPT_SCRIPT_MIN_CHARS.")

  script_min_words = _positive_int("TUBESCRIPT_SCRIPT_MIN_WORDS", "300")
  script_max_words = _positive_int("TUBESCRIPT_SCRIPT_MAX_WORDS", "600")
  if script_max_words < script_min_words:
    raise ValueError("TUBESCRIPT_SCRIPT_MAX_WORDS must not be lower than TUBESCRIPT_SCRIPT_MIN_WORDS.")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=os.getenv("TUBESCRIPT_LOG_DIR", "./logs").strip(),
    log_max_bytes=_positive_int("TUBESCRIPT_LOG_MAX_BYTES", "5242880"),
    log_backup_count=log_backup_count,
    data_dir=os.getenv("TUBESCRIPT_DATA_DIR", "./data").strip(),
    pg_dsn=_optional_str(os.getenv("TUBESCRIPT_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("TUBESCRIPT_PG_CONNECT_TIMEOUT", "5"),
    storage_owner_id=_optional_str(os.getenv("TUBESCRIPT_STORAGE_OWNER_ID")),
    openai_api_key=_optional_str(os.getenv("OPENAI_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    default_model=(os.getenv("TUBESCRIPT_DEFAULT_MODEL") or "gpt-4o").strip(),
    image_model=(os.getenv("TUBESCRIPT_IMAGE_MODEL") or "gemini-2.5-flash-image").strip(),
    image_prompt_model=(os.getenv("TUBESCRIPT_IMAGE_PROMPT_MODEL") or "gemini-2.5-flash").strip(),
    provider_timeout_seconds=_non_negative_float("TUBESCRIPT_PROVIDER_TIMEOUT_SECONDS", "60"),
    retry_attempts=retry_attempts,
    retry_initial_delay_seconds=_non_negative_float("TUBESCRIPT_RETRY_INITIAL_DELAY_SECONDS", "2"),
    image_interval_seconds=_non_negative_float("TUBESCRIPT_IMAGE_INTERVAL_SECONDS", "2"),
    script_min_chars=script_min_chars,
    script_max_chars=script_max_chars,
    script_min_words=script_min_words,
    script_max_words=script_max_words,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring provider configuration."""
  debug = _parse_bool(os.getenv("TUBESCRIPT_DEBUG"))
  pg_connect_timeout = _positive_int("TUBESCRIPT_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("TUBESCRIPT_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
