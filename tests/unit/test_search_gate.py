from __future__ import annotations

import pytest

from app.articles.errors import PrecheckFailed, SearchUnavailable
from app.articles.models import SearchResult
from app.articles.search_gate import MIN_VALID_RESULTS, gather_evidence, select_valid_results
from tests.conftest import FakeSearch


def test_select_valid_results_drops_blank_urls_and_keeps_rank() -> None:
  results = [SearchResult(url=" "), SearchResult(url="https://a.example", title=" A "), SearchResult(url=""), SearchResult(url="https://b.example")]
  valid = select_valid_results(results)
  assert [item.url for item in valid] == ["https://a.example", "https://b.example"]
  assert valid[0].title == "A"


def test_select_valid_results_respects_limit() -> None:
  results = [SearchResult(url=f"https://{index}.example") for index in range(20)]
  assert len(select_valid_results(results, limit=10)) == 10


@pytest.mark.anyio
async def test_gate_passes_with_enough_results() -> None:
  provider = FakeSearch()
  results = await gather_evidence(provider, "python async", language="EN", country="US", max_results=10, job_id="job-1")
  assert len(results) == 5
  assert provider.queries == [("python async", "EN", "US", 10)]


@pytest.mark.anyio
async def test_gate_caps_requested_results() -> None:
  provider = FakeSearch()
  await gather_evidence(provider, "topic", max_results=50)
  assert provider.queries[0][3] == 10


@pytest.mark.anyio
async def test_gate_rejects_too_few_valid_results() -> None:
  provider = FakeSearch(results=[SearchResult(url="https://only.example"), SearchResult(url="  ")])
  with pytest.raises(PrecheckFailed) as exc_info:
    await gather_evidence(provider, "obscure topic", job_id="job-9")
  assert exc_info.value.job_id == "job-9"
  assert str(MIN_VALID_RESULTS) in exc_info.value.message


@pytest.mark.anyio
async def test_gate_rejects_empty_result_list() -> None:
  with pytest.raises(PrecheckFailed):
    await gather_evidence(FakeSearch(results=[]), "nothing")


@pytest.mark.anyio
async def test_provider_errors_become_search_unavailable() -> None:
  provider = FakeSearch(error=RuntimeError("quota exceeded"))
  with pytest.raises(SearchUnavailable) as exc_info:
    await gather_evidence(provider, "topic", job_id="job-2")
  assert exc_info.value.message == "quota exceeded"
  assert exc_info.value.status_code == 502
