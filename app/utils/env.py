"""Local .env support so development runs need no exported variables."""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILE_VAR = "SEOHQ_ENV_FILE"
_QUOTES = ('"', "'")


def default_env_path() -> Path:
  """Return ``SEOHQ_ENV_FILE`` when set, otherwise the .env at the project root."""
  configured = os.getenv(ENV_FILE_VAR)
  if configured:
    return Path(configured).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(line: str) -> tuple[str, str] | None:
  """Split one ``KEY=value`` line, or return None for blanks, comments and junk."""
  text = line.strip()
  if not text or text.startswith("#"):
    return None

  key, sep, value = text.removeprefix("export ").partition("=")
  key = key.strip()
  if not sep or not key:
    return None

  value = value.strip()
  if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
    return key, value[1:-1]
  # Unquoted values may carry a trailing comment.
  return key, value.split(" #", 1)[0].rstrip()


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Copy entries from ``path`` into the process environment.

  Variables already exported win unless ``override`` is set. A missing file is not an
  error. Returns the keys that were written.
  """
  if not path.is_file():
    return []

  applied: list[str] = []
  for line in path.read_text(encoding="utf-8").splitlines():
    entry = parse_env_line(line)
    if entry is None:
      continue
    key, value = entry
    if key in os.environ and not override:
      continue
    os.environ[key] = value
    applied.append(key)
  return applied
