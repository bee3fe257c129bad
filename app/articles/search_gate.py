"""Minimum-evidence gate run before any research is dispatched."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from app.articles.errors import PrecheckFailed, SearchUnavailable
from app.articles.models import SearchResult

logger = logging.getLogger(__name__)

MIN_VALID_RESULTS = 2
MAX_RESULTS = 10


class SearchProvider(Protocol):
  """Contract for ranked web search."""

  async def search(self, query: str, *, language: str | None = None, country: str | None = None, max_results: int = MAX_RESULTS) -> list[SearchResult]:
    """Return ranked results for a query."""


def select_valid_results(results: Iterable[SearchResult], limit: int = MAX_RESULTS) -> list[SearchResult]:
  """Keep results with a non-blank URL, in rank order, up to limit."""
  valid: list[SearchResult] = []
  for result in results:
    url = result.url.strip()
    if not url:
      continue
    valid.append(SearchResult(url=url, title=result.title.strip(), snippet=result.snippet.strip()))
    if len(valid) >= limit:
      break
  return valid


async def gather_evidence(provider: SearchProvider, query: str, *, language: str | None = None, country: str | None = None, max_results: int = MAX_RESULTS, job_id: str | None = None) -> list[SearchResult]:
  """Search for the query and require at least MIN_VALID_RESULTS usable results."""
  limit = min(max_results, MAX_RESULTS)
  try:
    raw_results = await provider.search(query, language=language, country=country, max_results=limit)
  except Exception as exc:  # noqa: BLE001
    logger.error("Search provider failed job_id=%s query=%r: %s", job_id, query, exc)
    raise SearchUnavailable(str(exc) or type(exc).__name__, job_id=job_id) from exc

  valid = select_valid_results(raw_results, limit=limit)
  logger.info("Search gate job_id=%s raw=%d valid=%d", job_id, len(raw_results), len(valid))
  if len(valid) < MIN_VALID_RESULTS:
    raise PrecheckFailed(f"Found {len(valid)} usable search results; at least {MIN_VALID_RESULTS} are required.", job_id=job_id)
  return valid
