"""Tavily search provider implementation."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.concurrency import run_in_threadpool
from tavily import TavilyClient

from app.articles.models import SearchResult

logger = logging.getLogger(__name__)

# Tavily accepts full country names rather than ISO codes.
_COUNTRY_NAMES = {"RU": "russia", "US": "united states", "GB": "united kingdom", "DE": "germany", "FR": "france", "ES": "spain", "IT": "italy", "UA": "ukraine", "KZ": "kazakhstan"}


class TavilySearchProvider:
  """Provider for the Tavily search API."""

  def __init__(self, api_key: str | None, *, client: TavilyClient | None = None) -> None:
    if client is None:
      if not api_key:
        raise ValueError("Tavily API key is required.")
      client = TavilyClient(api_key=api_key)
    self._client = client

  async def search(self, query: str, *, language: str | None = None, country: str | None = None, max_results: int = 10) -> list[SearchResult]:
    """Perform a search and map the response to ranked results."""
    kwargs: dict[str, Any] = {"max_results": max_results}
    country_name = _COUNTRY_NAMES.get((country or "").upper())
    if country_name:
      kwargs["country"] = country_name

    try:
      # Tavily client is synchronous
      response = await run_in_threadpool(self._client.search, query=query, **kwargs)
    except Exception as e:
      logger.error("Tavily search failed: %s", e)
      raise

    results = response.get("results") or []
    logger.info("Tavily search performed for query=%r language=%s results=%d", query, language, len(results))
    return [SearchResult(url=str(item.get("url") or ""), title=str(item.get("title") or ""), snippet=str(item.get("content") or "")) for item in results[:max_results]]
