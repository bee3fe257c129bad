from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.ai.providers.tavily import TavilySearchProvider


@pytest.mark.anyio
async def test_maps_results_and_country_name() -> None:
  client = MagicMock()
  client.search.return_value = {
    "results": [
      {"url": "https://a.example", "title": "A", "content": "first"},
      {"url": "https://b.example", "title": "B", "content": "second"},
    ]
  }
  provider = TavilySearchProvider(None, client=client)

  results = await provider.search("seo tools", language="RU", country="ru", max_results=5)

  client.search.assert_called_once_with(query="seo tools", max_results=5, country="russia")
  assert [(item.url, item.snippet) for item in results] == [("https://a.example", "first"), ("https://b.example", "second")]


@pytest.mark.anyio
async def test_unknown_country_is_not_forwarded() -> None:
  client = MagicMock()
  client.search.return_value = {"results": []}
  await TavilySearchProvider(None, client=client).search("q", country="ZZ", max_results=3)
  client.search.assert_called_once_with(query="q", max_results=3)


@pytest.mark.anyio
async def test_client_errors_propagate() -> None:
  client = MagicMock()
  client.search.side_effect = RuntimeError("invalid api key")
  with pytest.raises(RuntimeError, match="invalid api key"):
    await TavilySearchProvider(None, client=client).search("q")


def test_api_key_required_without_injected_client() -> None:
  with pytest.raises(ValueError):
    TavilySearchProvider("")
