"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the article engine service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  log_http_bodies: bool
  log_http_body_bytes: int
  pg_dsn: str | None
  pg_connect_timeout: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  openai_api_key: str | None
  openai_base_url: str | None
  research_assistant_id: str | None
  section_assistant_id: str | None
  cleanup_assistant_id: str | None
  seo_assistant_id: str | None
  tavily_api_key: str | None
  search_max_results: int
  poll_interval_seconds: float
  research_poll_budget_seconds: float
  section_poll_budget_seconds: float
  cleanup_poll_budget_seconds: float
  seo_poll_budget_seconds: float
  default_language: str


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("SEOHQ_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SEOHQ_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("SEOHQ_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_seconds(name: str, default: str) -> float:
  """Read a positive number of seconds from the environment."""
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number of seconds.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SEOHQ_ENV", "development").lower()

  # Toggle verbose error output and SQL echo in non-production environments.
  debug = _parse_bool(os.getenv("SEOHQ_DEBUG"))

  log_max_bytes = int(os.getenv("SEOHQ_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("SEOHQ_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("SEOHQ_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SEOHQ_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("SEOHQ_LOG_HTTP_4XX"))
  # Allow opt-in logging of HTTP request/response bodies with a size cap.
  log_http_bodies = _parse_bool(os.getenv("SEOHQ_LOG_HTTP_BODIES"))
  log_http_body_bytes = int(os.getenv("SEOHQ_LOG_HTTP_BODY_BYTES", "2048"))
  if log_http_body_bytes <= 0:
    raise ValueError("SEOHQ_LOG_HTTP_BODY_BYTES must be a positive integer.")

  # The search gate needs at least two usable results, and the provider caps at ten.
  search_max_results = int(os.getenv("SEOHQ_SEARCH_MAX_RESULTS", "10"))
  if search_max_results < 2 or search_max_results > 10:
    raise ValueError("SEOHQ_SEARCH_MAX_RESULTS must be between 2 and 10.")

  default_language = (os.getenv("SEOHQ_DEFAULT_LANGUAGE") or "RU").strip().upper()

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("SEOHQ_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    log_http_bodies=log_http_bodies,
    log_http_body_bytes=log_http_body_bytes,
    pg_dsn=os.getenv("SEOHQ_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=int(os.getenv("SEOHQ_PG_CONNECT_TIMEOUT", "5")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    openai_api_key=_optional_str(os.getenv("OPENAI_API_KEY")),
    openai_base_url=_optional_str(os.getenv("OPENAI_BASE_URL")),
    research_assistant_id=_optional_str(os.getenv("SEOHQ_RESEARCH_ASSISTANT_ID")),
    section_assistant_id=_optional_str(os.getenv("SEOHQ_SECTION_ASSISTANT_ID")),
    cleanup_assistant_id=_optional_str(os.getenv("SEOHQ_CLEANUP_ASSISTANT_ID")),
    seo_assistant_id=_optional_str(os.getenv("SEOHQ_SEO_ASSISTANT_ID")),
    tavily_api_key=_optional_str(os.getenv("TAVILY_API_KEY")),
    search_max_results=search_max_results,
    poll_interval_seconds=_parse_seconds("SEOHQ_POLL_INTERVAL_SECONDS", "1.0"),
    research_poll_budget_seconds=_parse_seconds("SEOHQ_RESEARCH_POLL_BUDGET_SECONDS", "15"),
    section_poll_budget_seconds=_parse_seconds("SEOHQ_SECTION_POLL_BUDGET_SECONDS", "30"),
    cleanup_poll_budget_seconds=_parse_seconds("SEOHQ_CLEANUP_POLL_BUDGET_SECONDS", "30"),
    seo_poll_budget_seconds=_parse_seconds("SEOHQ_SEO_POLL_BUDGET_SECONDS", "30"),
    default_language=default_language or "RU",
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("SEOHQ_DEBUG"))
  pg_connect_timeout = int(os.getenv("SEOHQ_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("SEOHQ_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Support fallback to DATABASE_URL for hosted environments.
  pg_dsn = os.getenv("SEOHQ_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
