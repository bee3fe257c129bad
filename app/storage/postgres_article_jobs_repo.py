"""Postgres-backed repository for article jobs using SQLAlchemy."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.articles.models import ArticleJobRecord, ArticleJobStatus, ArticleParameters, Outline, RunRef, SearchResult, SectionArtifact
from app.core.database import get_session_factory
from app.schema.article_jobs import ArticleJob
from app.storage.article_jobs_repo import ArticleJobsRepository, section_run_key


def _now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class PostgresArticleJobsRepository(ArticleJobsRepository):
  """Persist article jobs to Postgres, locking the row for read-modify-write updates."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: ArticleJobRecord) -> None:
    params = record.parameters
    async with self._session_factory() as session:
      row = ArticleJob(
        job_id=record.job_id,
        user_id=record.user_id,
        topic=params.topic,
        language=params.language,
        audience=params.audience,
        author_persona=params.author_persona,
        angle=params.angle,
        content_goal=params.content_goal,
        desired_length=params.desired_length,
        complexity=params.complexity,
        constraints=params.constraints,
        thread_id=record.thread_id,
        run_id=record.run_id,
        status=record.status.value,
        outline=record.outline.to_dict() if record.outline else None,
        section_notes=dict(record.section_notes),
        sources=[source.to_dict() for source in record.sources],
        sections=[section.to_dict() for section in record.sections],
        pending_runs={key: ref.to_dict() for key, ref in record.pending_runs.items()},
        final_html=record.final_html,
        meta_title=record.meta_title,
        meta_description=record.meta_description,
        seo=record.seo,
        error=record.error,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(row)
      await session.commit()

  async def get_job(self, job_id: str) -> ArticleJobRecord | None:
    async with self._session_factory() as session:
      row = await session.get(ArticleJob, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

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
    async with self._session_factory() as session:
      row = await self._locked_row(session, job_id)
      if row is None:
        return None
      if expected_status is not None and row.status not in {item.value for item in expected_status}:
        await session.rollback()
        return None
      if status is not None:
        row.status = status.value
      if thread_id is not None:
        row.thread_id = thread_id
      if run_id is not None:
        row.run_id = run_id
      if outline is not None:
        row.outline = outline.to_dict()
      if section_notes is not None:
        row.section_notes = dict(section_notes)
      if sources is not None:
        row.sources = [source.to_dict() for source in sources]
      if final_html is not None:
        row.final_html = final_html
      if meta_title is not None:
        row.meta_title = meta_title
      if meta_description is not None:
        row.meta_description = meta_description
      if seo is not None:
        row.seo = seo
      if error is not None:
        row.error = error
      row.updated_at = _now_iso()
      await session.commit()
      return self._model_to_record(row)

  async def upsert_section(self, job_id: str, section: SectionArtifact, *, expected_status: tuple[ArticleJobStatus, ...] | None = None) -> ArticleJobRecord | None:
    async with self._session_factory() as session:
      row = await self._locked_row(session, job_id)
      if row is None:
        return None
      if expected_status is not None and row.status not in {item.value for item in expected_status}:
        await session.rollback()
        return None
      entries = list(row.sections or [])
      payload = section.to_dict()
      for index, entry in enumerate(entries):
        if entry.get("sectionId") == section.section_id:
          entries[index] = payload
          break
      else:
        entries.append(payload)
      pending = dict(row.pending_runs or {})
      pending.pop(section_run_key(section.section_id), None)
      # Assign fresh containers so the JSONB columns are flagged dirty.
      row.sections = entries
      row.pending_runs = pending
      row.updated_at = _now_iso()
      await session.commit()
      return self._model_to_record(row)

  async def set_pending_run(self, job_id: str, key: str, ref: RunRef | None) -> ArticleJobRecord | None:
    async with self._session_factory() as session:
      row = await self._locked_row(session, job_id)
      if row is None:
        return None
      pending = dict(row.pending_runs or {})
      if ref is None:
        pending.pop(key, None)
      else:
        pending[key] = ref.to_dict()
      row.pending_runs = pending
      row.updated_at = _now_iso()
      await session.commit()
      return self._model_to_record(row)

  async def _locked_row(self, session: AsyncSession, job_id: str) -> ArticleJob | None:
    stmt = select(ArticleJob).where(ArticleJob.job_id == job_id).with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()

  def _model_to_record(self, row: ArticleJob) -> ArticleJobRecord:
    parameters = ArticleParameters(
      topic=row.topic,
      language=row.language,
      audience=row.audience,
      author_persona=row.author_persona,
      angle=row.angle,
      content_goal=row.content_goal,
      desired_length=row.desired_length,
      complexity=row.complexity,
      constraints=row.constraints,
    )
    return ArticleJobRecord(
      job_id=row.job_id,
      user_id=row.user_id,
      parameters=parameters,
      status=ArticleJobStatus(row.status),
      created_at=row.created_at,
      updated_at=row.updated_at,
      thread_id=row.thread_id,
      run_id=row.run_id,
      outline=Outline.from_dict(row.outline) if row.outline else None,
      section_notes=dict(row.section_notes or {}),
      sources=[SearchResult.from_dict(item) for item in row.sources or []],
      sections=[SectionArtifact.from_dict(item) for item in row.sections or []],
      pending_runs={key: RunRef.from_dict(value) for key, value in (row.pending_runs or {}).items()},
      final_html=row.final_html,
      meta_title=row.meta_title,
      meta_description=row.meta_description,
      seo=row.seo,
      error=row.error,
    )
