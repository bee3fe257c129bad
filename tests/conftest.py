"""Shared fixtures and in-memory doubles for the article pipeline tests."""

from __future__ import annotations

import copy
import os
from collections.abc import Callable
from dataclasses import replace
from typing import Any

# Ensure required settings are available before importing the app.
os.environ.setdefault("SEOHQ_ALLOWED_ORIGINS", "http://localhost")

import pytest  # noqa: E402
from anyio.lowlevel import checkpoint  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.ai.assistants import AssistantServiceError, RunPoll  # noqa: E402
from app.ai.polling import PollBudget  # noqa: E402
from app.articles.models import ArticleJobRecord, ArticleJobStatus, RunRef, SearchResult, SectionArtifact  # noqa: E402
from app.articles.pipeline import ArticlePipeline, PipelineOptions  # noqa: E402
from app.storage.article_jobs_repo import section_run_key  # noqa: E402

RESEARCH_ASSISTANT = "asst_research"
SECTION_ASSISTANT = "asst_section"
CLEANUP_ASSISTANT = "asst_cleanup"
SEO_ASSISTANT = "asst_seo"


class InMemoryArticleJobsRepo:
  """In-memory article jobs repository mirroring the Postgres semantics."""

  def __init__(self) -> None:
    self._jobs: dict[str, ArticleJobRecord] = {}
    self.rejected_updates = 0

  async def create_job(self, record: ArticleJobRecord) -> None:
    await checkpoint()
    self._jobs[record.job_id] = copy.deepcopy(record)

  async def get_job(self, job_id: str) -> ArticleJobRecord | None:
    await checkpoint()
    record = self._jobs.get(job_id)
    return copy.deepcopy(record) if record is not None else None

  async def update_job(self, job_id: str, *, expected_status: tuple[ArticleJobStatus, ...] | None = None, **kwargs: Any) -> ArticleJobRecord | None:
    await checkpoint()
    record = self._jobs.get(job_id)

    # Bail out when the job id is unknown or the status guard does not match.
    if record is None:
      return None
    if expected_status is not None and record.status not in expected_status:
      self.rejected_updates += 1
      return None

    updated = replace(record, **{key: value for key, value in kwargs.items() if value is not None})
    self._jobs[job_id] = updated
    return copy.deepcopy(updated)

  async def upsert_section(self, job_id: str, section: SectionArtifact, *, expected_status: tuple[ArticleJobStatus, ...] | None = None) -> ArticleJobRecord | None:
    await checkpoint()
    record = self._jobs.get(job_id)
    if record is None:
      return None
    if expected_status is not None and record.status not in expected_status:
      self.rejected_updates += 1
      return None
    sections = [item for item in record.sections]
    for index, item in enumerate(sections):
      if item.section_id == section.section_id:
        sections[index] = section
        break
    else:
      sections.append(section)
    pending = {key: ref for key, ref in record.pending_runs.items() if key != section_run_key(section.section_id)}
    self._jobs[job_id] = replace(record, sections=sections, pending_runs=pending)
    return copy.deepcopy(self._jobs[job_id])

  async def set_pending_run(self, job_id: str, key: str, ref: RunRef | None) -> ArticleJobRecord | None:
    await checkpoint()
    record = self._jobs.get(job_id)
    if record is None:
      return None
    pending = dict(record.pending_runs)
    if ref is None:
      pending.pop(key, None)
    else:
      pending[key] = ref
    self._jobs[job_id] = replace(record, pending_runs=pending)
    return copy.deepcopy(self._jobs[job_id])

  def put(self, record: ArticleJobRecord) -> None:
    self._jobs[record.job_id] = record

  def raw(self, job_id: str) -> ArticleJobRecord:
    return self._jobs[job_id]


class FakeAssistants:
  """Scripted assistants service.

  Each run replays a list of poll outcomes chosen by assistant id; the last outcome repeats
  once the list is exhausted. ``respond`` lets a test compute the outcomes from the prompt.
  """

  def __init__(self) -> None:
    self._responders: dict[str, Callable[[str], list[RunPoll]]] = {}
    self._runs: dict[str, dict[str, Any]] = {}
    self.messages: dict[str, list[str]] = {}
    self.started: list[tuple[str, str, str]] = []
    self.poll_calls = 0
    self.errors: dict[str, Exception] = {}
    self._counter = 0

  def script(self, assistant_id: str, *polls: RunPoll) -> None:
    outcomes = list(polls)
    self._responders[assistant_id] = lambda _prompt: list(outcomes)

  def respond(self, assistant_id: str, responder: Callable[[str], list[RunPoll]]) -> None:
    self._responders[assistant_id] = responder

  def fail(self, operation: str, message: str = "upstream unavailable") -> None:
    self.errors[operation] = AssistantServiceError(message)

  def _maybe_raise(self, operation: str) -> None:
    if operation in self.errors:
      raise self.errors[operation]

  async def open_conversation(self) -> str:
    self._maybe_raise("open_conversation")
    self._counter += 1
    thread_id = f"thread_{self._counter}"
    self.messages[thread_id] = []
    return thread_id

  async def post_message(self, thread_id: str, role: str, text: str) -> None:
    self._maybe_raise("post_message")
    self.messages[thread_id].append(text)

  async def start_run(self, thread_id: str, assistant_id: str) -> str:
    self._maybe_raise("start_run")
    self._counter += 1
    run_id = f"run_{self._counter}"
    prompt = self.messages[thread_id][-1] if self.messages.get(thread_id) else ""
    responder = self._responders.get(assistant_id, lambda _prompt: [RunPoll(state="in_progress")])
    self._runs[run_id] = {"thread_id": thread_id, "assistant_id": assistant_id, "outcomes": responder(prompt), "index": 0}
    self.started.append((thread_id, assistant_id, run_id))
    return run_id

  async def poll(self, thread_id: str, run_id: str) -> RunPoll:
    self._maybe_raise("poll")
    self.poll_calls += 1
    run = self._runs[run_id]
    assert run["thread_id"] == thread_id
    outcomes = run["outcomes"]
    outcome = outcomes[min(run["index"], len(outcomes) - 1)]
    run["index"] += 1
    return outcome

  def runs_for(self, assistant_id: str) -> list[str]:
    return [run_id for _thread, assistant, run_id in self.started if assistant == assistant_id]


class FakeSearch:
  """Search provider returning canned results or raising."""

  def __init__(self, results: list[SearchResult] | None = None, error: Exception | None = None) -> None:
    self.results = results if results is not None else [SearchResult(url=f"https://example.com/{index}", title=f"Result {index}", snippet="snippet") for index in range(1, 6)]
    self.error = error
    self.queries: list[tuple[str, str | None, str | None, int]] = []

  async def search(self, query: str, *, language: str | None = None, country: str | None = None, max_results: int = 10) -> list[SearchResult]:
    self.queries.append((query, language, country, max_results))
    if self.error is not None:
      raise self.error
    return list(self.results)


class FakeClock:
  """Deterministic clock: sleeping advances time instantly."""

  def __init__(self) -> None:
    self.now = 0.0
    self.sleeps: list[float] = []

  def monotonic(self) -> float:
    return self.now

  async def sleep(self, seconds: float) -> None:
    self.sleeps.append(seconds)
    self.now += seconds
    await checkpoint()


def build_options(**overrides: Any) -> PipelineOptions:
  values: dict[str, Any] = {
    "research_assistant_id": RESEARCH_ASSISTANT,
    "section_assistant_id": SECTION_ASSISTANT,
    "cleanup_assistant_id": CLEANUP_ASSISTANT,
    "seo_assistant_id": SEO_ASSISTANT,
    "research_budget": PollBudget(15, 1.0),
    "section_budget": PollBudget(30, 1.0),
    "cleanup_budget": PollBudget(30, 1.0),
    "seo_budget": PollBudget(30, 1.0),
  }
  values.update(overrides)
  return PipelineOptions(**values)


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def repo() -> InMemoryArticleJobsRepo:
  return InMemoryArticleJobsRepo()


@pytest.fixture
def assistants() -> FakeAssistants:
  return FakeAssistants()


@pytest.fixture
def search() -> FakeSearch:
  return FakeSearch()


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def pipeline(repo: InMemoryArticleJobsRepo, assistants: FakeAssistants, search: FakeSearch, clock: FakeClock) -> ArticlePipeline:
  return ArticlePipeline(repo, assistants, search, build_options(), clock=clock)


@pytest.fixture
async def async_client(pipeline: ArticlePipeline):
  from app.api.deps import get_article_pipeline
  from app.core.security import get_current_user_id
  from app.main import app

  app.dependency_overrides[get_current_user_id] = lambda: "user-1"
  app.dependency_overrides[get_article_pipeline] = lambda: pipeline
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
