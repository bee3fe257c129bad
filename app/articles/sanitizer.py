"""Cleanup of raw AI output into publishable text.

Assistants wrap their answers in inconsistent ways: markdown code fences, a JSON object
holding the HTML under one of several keys, or plain HTML. ``sanitize`` peels those
wrappers off and normalizes typographic dashes. It never raises and applying it twice
yields the same text as applying it once.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence

SECTION_KEYS: tuple[str, ...] = ("html", "sectionHtml", "cleanHtmlSection", "htmlSection")
CLEANUP_KEYS: tuple[str, ...] = ("html", "finalHtml", "cleanHtmlSection", "htmlSection")

_LEADING_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"\r?\n?[ \t]*```\s*$")
_DASHES = str.maketrans({"—": "-", "–": "-"})


def strip_code_fence(text: str) -> str:
  """Remove a leading and/or trailing fenced code-block marker."""
  without_leading = _LEADING_FENCE_RE.sub("", text, count=1)
  without_trailing = _TRAILING_FENCE_RE.sub("", without_leading, count=1)
  if without_trailing == text:
    return text
  return without_trailing.strip()


def unwrap_payload(text: str, keys: Sequence[str]) -> str:
  """Return the first non-empty candidate key of a JSON object, or the text unchanged."""
  candidate = text.strip()
  if not keys or not candidate.startswith("{"):
    return text

  try:
    payload = json.loads(candidate)
  except json.JSONDecodeError:
    return text

  if not isinstance(payload, dict):
    return text

  for key in keys:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
      return value

  return text


def normalize_dashes(text: str) -> str:
  return text.translate(_DASHES)


def _sanitize_once(text: str, keys: Sequence[str]) -> str:
  return normalize_dashes(unwrap_payload(strip_code_fence(text), keys))


def sanitize(text: str | None, keys: Sequence[str] = SECTION_KEYS) -> str:
  """Strip fences, unwrap JSON envelopes and normalize dashes until nothing changes."""
  current = text or ""
  while True:
    cleaned = _sanitize_once(current, keys)
    if cleaned == current:
      return current
    current = cleaned
