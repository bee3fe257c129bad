"""Service layer translating between the API models and the article pipeline."""

from __future__ import annotations

import logging

from app.api.models import (
  ArticleJobStatusResponse,
  FaqModel,
  FinalizeResponse,
  OutlineModel,
  OutlineSectionModel,
  ProgressModel,
  ResearchResultModel,
  ResearchStatusResponse,
  SectionProgressModel,
  SectionResponse,
  SeoPackageModel,
  SeoResponse,
  SourceModel,
  StartArticleRequest,
  StartArticleResponse,
)
from app.articles.models import ArticleJobRecord, ArticleParameters, Outline, SearchResult, SeoPackage
from app.articles.pipeline import ArticlePipeline
from app.config import Settings
from app.storage.article_jobs_repo import section_run_key

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
  "pending": "Job created; research has not started.",
  "generating": "Research is running.",
  "research_completed": "Research completed; sections can be generated.",
  "writing_sections": "Sections are being written.",
  "finalizing": "Final cleanup is running.",
  "completed": "Article is ready.",
  "failed": "Article generation failed.",
}


def _outline_model(outline: Outline | None) -> OutlineModel | None:
  if outline is None:
    return None
  return OutlineModel(title=outline.title, sections=[OutlineSectionModel(id=section.section_id, title=section.title, description=section.description) for section in outline.sections])


def _source_models(sources: list[SearchResult]) -> list[SourceModel]:
  return [SourceModel(url=source.url, title=source.title, snippet=source.snippet) for source in sources]


def _seo_model(package: SeoPackage | None) -> SeoPackageModel | None:
  if package is None:
    return None
  return SeoPackageModel(
    meta_title=package.meta_title,
    meta_description=package.meta_description,
    h1=package.h1,
    faq=[FaqModel(question=str(item.get("question", "")), answer=str(item.get("answer", ""))) for item in package.faq],
    semantic_topics=list(package.semantic_topics),
  )


def build_parameters(request: StartArticleRequest, settings: Settings) -> ArticleParameters:
  language = (request.language or settings.default_language).strip().upper()
  return ArticleParameters(
    topic=request.topic,
    language=language,
    audience=request.audience,
    author_persona=request.author_persona,
    angle=request.angle,
    content_goal=request.content_goal,
    desired_length=request.desired_length,
    complexity=request.complexity,
    constraints=request.constraints,
  )


async def start_article(pipeline: ArticlePipeline, request: StartArticleRequest, settings: Settings, *, user_id: str) -> StartArticleResponse:
  result = await pipeline.start_research(user_id, build_parameters(request, settings))
  return StartArticleResponse(job_id=result.job_id, thread_id=result.thread_id, run_id=result.run_id, status=result.status.value)


async def poll_research(pipeline: ArticlePipeline, job_id: str, *, user_id: str) -> ResearchStatusResponse:
  result = await pipeline.poll_research(user_id, job_id)
  research = None
  if result.research is not None:
    outline = _outline_model(result.research.outline)
    research = ResearchResultModel(outline=outline, section_notes=result.research.section_notes, sources=_source_models(result.research.sources))
  return ResearchStatusResponse(job_id=job_id, status=result.state, job_status=result.status.value, message=result.message, result=research)


async def generate_section(pipeline: ArticlePipeline, job_id: str, section_id: str, *, user_id: str) -> SectionResponse:
  result = await pipeline.generate_section(user_id, job_id, section_id)
  return SectionResponse(job_id=job_id, section_id=section_id, status=result.state, job_status=result.status.value, message=result.message, section_html=result.html)


async def finalize_article(pipeline: ArticlePipeline, job_id: str, *, user_id: str) -> FinalizeResponse:
  result = await pipeline.finalize(user_id, job_id)
  return FinalizeResponse(job_id=job_id, status=result.state, job_status=result.status.value, message=result.message, final_html=result.final_html)


async def generate_seo(pipeline: ArticlePipeline, job_id: str, *, user_id: str) -> SeoResponse:
  result = await pipeline.generate_seo(user_id, job_id)
  return SeoResponse(job_id=job_id, status=result.state, job_status=result.status.value, message=result.message, seo=_seo_model(result.seo))


def build_progress(job: ArticleJobRecord) -> ProgressModel:
  """Summarize per-section progress in outline order."""
  sections: list[SectionProgressModel] = []
  if job.outline is not None:
    for outline_section in job.outline.sections:
      artifact = job.section(outline_section.section_id)
      if artifact is not None and artifact.status == "completed":
        sections.append(SectionProgressModel(section_id=outline_section.section_id, title=outline_section.title, status="completed", completed_at=artifact.completed_at))
      elif section_run_key(outline_section.section_id) in job.pending_runs:
        sections.append(SectionProgressModel(section_id=outline_section.section_id, title=outline_section.title, status="in_progress"))
      else:
        sections.append(SectionProgressModel(section_id=outline_section.section_id, title=outline_section.title, status="pending"))
  completed = sum(1 for item in sections if item.status == "completed")
  return ProgressModel(total_sections=len(sections), completed_sections=completed, sections=sections)


async def get_article_status(pipeline: ArticlePipeline, job_id: str, *, user_id: str) -> ArticleJobStatusResponse:
  job = await pipeline.get_status(user_id, job_id)
  message = _STATUS_MESSAGES.get(job.status.value, job.status.value)
  if job.error and job.status.value == "failed":
    message = f"{message} {job.error}"
  return ArticleJobStatusResponse(
    job_id=job.job_id,
    status=job.status.value,
    message=message,
    topic=job.parameters.topic,
    language=job.parameters.language,
    outline=_outline_model(job.outline),
    sources=_source_models(job.sources),
    progress=build_progress(job),
    final_html=job.final_html,
    meta_title=job.meta_title,
    meta_description=job.meta_description,
    error=job.error,
    created_at=job.created_at,
    updated_at=job.updated_at,
  )
