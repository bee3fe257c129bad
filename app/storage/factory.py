"""Repository factory."""

from __future__ import annotations

from app.config import Settings
from app.storage.article_jobs_repo import ArticleJobsRepository


def _get_article_jobs_repo(settings: Settings) -> ArticleJobsRepository:
  """Return the repository backing article jobs."""
  if not settings.pg_dsn:
    raise RuntimeError("Article jobs require SEOHQ_PG_DSN to be configured.")

  from app.storage.postgres_article_jobs_repo import PostgresArticleJobsRepository

  return PostgresArticleJobsRepository()
