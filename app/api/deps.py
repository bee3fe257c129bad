"""Shared FastAPI dependencies for the article pipeline."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.ai.assistants import OpenAIAssistantsClient
from app.ai.providers.tavily import TavilySearchProvider
from app.articles.pipeline import ArticlePipeline, PipelineOptions
from app.config import Settings, get_settings
from app.storage.factory import _get_article_jobs_repo


@lru_cache(maxsize=4)
def get_assistants_client(api_key: str | None, base_url: str | None) -> OpenAIAssistantsClient:
  """Return a process-wide assistants client so its HTTP connection pool is reused."""
  return OpenAIAssistantsClient(api_key, base_url=base_url)


@lru_cache(maxsize=4)
def get_search_provider(api_key: str | None) -> TavilySearchProvider:
  return TavilySearchProvider(api_key)


def get_article_pipeline(settings: Settings = Depends(get_settings)) -> ArticlePipeline:  # noqa: B008
  """Wire the pipeline to Postgres, the assistants service and Tavily."""
  options = PipelineOptions.from_settings(settings)
  assistants = get_assistants_client(settings.openai_api_key, settings.openai_base_url)
  search = get_search_provider(settings.tavily_api_key)
  return ArticlePipeline(_get_article_jobs_repo(settings), assistants, search, options)
