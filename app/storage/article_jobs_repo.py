"""Storage interface for article jobs."""

from __future__ import annotations

from typing import Any, Protocol

from app.articles.models import ArticleJobRecord, ArticleJobStatus, Outline, RunRef, SearchResult, SectionArtifact


class ArticleJobsRepository(Protocol):
  """Repository contract for article job persistence.

  Every mutating call returns the updated record, or None when the job does not exist or
  (for ``update_job`` and ``upsert_section``) its status is not one of ``expected_status``.
  Section and pending-run writes are read-modify-write on the row and must be serialized by the implementation.
  """

  async def create_job(self, record: ArticleJobRecord) -> None:
    """Persist an initial job record."""

  async def get_job(self, job_id: str) -> ArticleJobRecord | None:
    """Fetch a job by identifier."""

  async def update_job(
    self,
    job_id: str,
    *,
    expected_status: tuple[ArticleJobStatus, ...] | None = None,
    status: ArticleJobStatus | None = None,
    thread_id: str | None = None,
    run_id: str | None = None,
    outline: Outline | None = None,
    section_notes: dict[str, str] | None = None,
    sources: list[SearchResult] | None = None,
    final_html: str | None = None,
    meta_title: str | None = None,
    meta_description: str | None = None,
    seo: dict[str, Any] | None = None,
    error: str | None = None,
  ) -> ArticleJobRecord | None:
    """Apply partial updates, optionally only when the current status matches."""

  async def upsert_section(self, job_id: str, section: SectionArtifact, *, expected_status: tuple[ArticleJobStatus, ...] | None = None) -> ArticleJobRecord | None:
    """Replace or append the section keyed by its id and clear its pending run."""

  async def set_pending_run(self, job_id: str, key: str, ref: RunRef | None) -> ArticleJobRecord | None:
    """Record (or clear, when ref is None) an in-flight run for a stage key."""


def section_run_key(section_id: str) -> str:
  return f"section:{section_id}"


SEO_RUN_KEY = "seo"
