"""HTTP-level tests for the article routes with in-memory collaborators."""

from __future__ import annotations

import json

import pytest
from httpx import AsyncClient

from app.ai.assistants import RunPoll
from app.articles.models import SearchResult
from tests.conftest import CLEANUP_ASSISTANT, RESEARCH_ASSISTANT, SECTION_ASSISTANT, SEO_ASSISTANT, FakeAssistants, FakeSearch

RESEARCH_REPLY = json.dumps(
  {
    "outline": {"title": "Cold brew", "sections": [{"id": "intro", "title": "Intro"}, {"id": "method", "title": "Method"}]},
    "sectionNotes": {"intro": "Hook the reader", "method": "Ratios and timing"},
    "sources": [{"url": "https://coffee.example/guide", "title": "Guide"}],
  }
)


async def _start(client: AsyncClient) -> str:
  response = await client.post("/v1/articles/start", json={"topic": "Cold brew coffee", "language": "en"})
  assert response.status_code == 200, response.text
  return response.json()["jobId"]


@pytest.mark.anyio
async def test_full_article_flow(async_client: AsyncClient, assistants: FakeAssistants) -> None:
  """The dashboard drives every stage through the public routes."""
  assistants.script(RESEARCH_ASSISTANT, RunPoll("in_progress"), RunPoll("completed", text=RESEARCH_REPLY))
  assistants.script(SECTION_ASSISTANT, RunPoll("completed", text='```html\n<h2>Part</h2>\n<p>Text — here</p>\n```'))
  assistants.script(CLEANUP_ASSISTANT, RunPoll("completed", text='{"finalHtml": "<h2>Cold brew</h2><p>Final</p>"}'))
  assistants.script(SEO_ASSISTANT, RunPoll("completed", text=json.dumps({"meta_title": "Cold brew", "meta_description": "How to make it."})))

  start = await async_client.post("/v1/articles/start", json={"topic": "Cold brew coffee", "language": "en"})
  body = start.json()
  assert start.status_code == 200
  assert body["success"] is True
  assert body["status"] == "generating"
  assert body["threadId"] and body["runId"]
  job_id = body["jobId"]

  research = await async_client.get(f"/v1/articles/{job_id}/research")
  research_body = research.json()
  assert research_body["status"] == "completed"
  assert research_body["jobStatus"] == "research_completed"
  assert [section["id"] for section in research_body["result"]["outline"]["sections"]] == ["intro", "method"]
  assert research_body["result"]["sectionNotes"]["method"] == "Ratios and timing"

  section = await async_client.post(f"/v1/articles/{job_id}/sections/method")
  section_body = section.json()
  assert section_body["status"] == "completed"
  assert section_body["sectionId"] == "method"
  assert section_body["sectionHtml"] == "<h2>Part</h2>\n<p>Text - here</p>"
  assert section_body["jobStatus"] == "writing_sections"

  status = await async_client.get(f"/v1/articles/{job_id}")
  progress = status.json()["progress"]
  assert progress["totalSections"] == 2
  assert progress["completedSections"] == 1
  assert [item["status"] for item in progress["sections"]] == ["pending", "completed"]
  assert status.json()["language"] == "EN"

  final = await async_client.post(f"/v1/articles/{job_id}/finalize")
  assert final.json()["status"] == "completed"
  assert final.json()["jobStatus"] == "completed"
  assert final.json()["finalHtml"] == "<h2>Cold brew</h2><p>Final</p>"

  seo = await async_client.post(f"/v1/articles/{job_id}/seo")
  assert seo.json()["seo"]["metaTitle"] == "Cold brew"

  snapshot = (await async_client.get(f"/v1/articles/{job_id}")).json()
  assert snapshot["status"] == "completed"
  assert snapshot["metaDescription"] == "How to make it."


@pytest.mark.anyio
async def test_research_in_progress_response(async_client: AsyncClient, assistants: FakeAssistants) -> None:
  assistants.script(RESEARCH_ASSISTANT, RunPoll("queued"))
  job_id = await _start(async_client)
  response = await async_client.get(f"/v1/articles/{job_id}/research")
  assert response.status_code == 200
  assert response.json()["status"] == "in_progress"
  assert response.json()["jobStatus"] == "generating"
  assert response.json()["result"] is None


@pytest.mark.anyio
async def test_search_gate_rejection(async_client: AsyncClient, search: FakeSearch, assistants: FakeAssistants) -> None:
  search.results = [SearchResult(url="https://lonely.example")]
  response = await async_client.post("/v1/articles/start", json={"topic": "Nothing indexed"})
  assert response.status_code == 422
  detail = response.json()["detail"]
  assert detail["error"] == "PRECHECK_FAILED"
  assert detail["jobId"]
  assert assistants.started == []


@pytest.mark.anyio
async def test_blank_topic_fails_validation(async_client: AsyncClient, search: FakeSearch) -> None:
  response = await async_client.post("/v1/articles/start", json={"topic": "   "})
  assert response.status_code == 422
  assert search.queries == []


@pytest.mark.anyio
async def test_section_before_research_is_conflict(async_client: AsyncClient, assistants: FakeAssistants) -> None:
  assistants.script(RESEARCH_ASSISTANT, RunPoll("in_progress"))
  job_id = await _start(async_client)
  response = await async_client.post(f"/v1/articles/{job_id}/sections/intro")
  assert response.status_code == 409
  assert response.json()["detail"] == {"error": "INVALID_STATE", "message": "Sections cannot be generated while the job is generating.", "jobId": job_id, "jobStatus": "generating"}


@pytest.mark.anyio
async def test_generation_failure_is_bad_gateway(async_client: AsyncClient, assistants: FakeAssistants) -> None:
  assistants.script(RESEARCH_ASSISTANT, RunPoll("failed", reason="Run expired"))
  job_id = await _start(async_client)
  response = await async_client.get(f"/v1/articles/{job_id}/research")
  assert response.status_code == 502
  assert response.json()["detail"]["jobStatus"] == "failed"
  status = (await async_client.get(f"/v1/articles/{job_id}")).json()
  assert status["status"] == "failed"
  assert status["error"] == "Run expired"


@pytest.mark.anyio
async def test_unknown_job_is_not_found(async_client: AsyncClient) -> None:
  response = await async_client.get("/v1/articles/does-not-exist")
  assert response.status_code == 404
  assert response.json()["detail"]["error"] == "NOT_FOUND"
  assert "x-request-id" in response.headers


@pytest.mark.anyio
async def test_missing_bearer_token_is_unauthenticated(async_client: AsyncClient) -> None:
  from app.core.security import get_current_user_id
  from app.main import app

  app.dependency_overrides.pop(get_current_user_id)
  response = await async_client.get("/v1/articles/any-job")
  assert response.status_code == 401
  assert response.json()["detail"]["error"] == "UNAUTHENTICATED"
