import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_article_pipeline
from app.api.models import ArticleJobStatusResponse, FinalizeResponse, ResearchStatusResponse, SectionResponse, SeoResponse, StartArticleRequest, StartArticleResponse
from app.articles.pipeline import ArticlePipeline
from app.config import Settings, get_settings
from app.core.security import get_current_user_id
from app.services import articles as article_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.articles")


@router.post("/start", response_model=StartArticleResponse)
async def start_article(  # noqa: B008
  request: StartArticleRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> StartArticleResponse:
  """Create an article job and dispatch its research run."""
  return await article_service.start_article(pipeline, request, settings, user_id=user_id)


@router.get("/{job_id}/research", response_model=ResearchStatusResponse)
async def poll_research(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> ResearchStatusResponse:
  """Check the research run and return the outline once it is ready."""
  return await article_service.poll_research(pipeline, job_id, user_id=user_id)


@router.post("/{job_id}/sections/{section_id}", response_model=SectionResponse)
async def generate_section(  # noqa: B008
  job_id: str,
  section_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> SectionResponse:
  """Generate one outline section; call again while the status is in_progress."""
  return await article_service.generate_section(pipeline, job_id, section_id, user_id=user_id)


@router.post("/{job_id}/finalize", response_model=FinalizeResponse)
async def finalize_article(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> FinalizeResponse:
  """Assemble completed sections and run the cleanup pass."""
  return await article_service.finalize_article(pipeline, job_id, user_id=user_id)


@router.post("/{job_id}/seo", response_model=SeoResponse)
async def generate_seo(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> SeoResponse:
  """Generate meta tags, H1, FAQ and semantic topics for a finished article."""
  return await article_service.generate_seo(pipeline, job_id, user_id=user_id)


@router.get("/{job_id}", response_model=ArticleJobStatusResponse)
async def get_article_status(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  pipeline: ArticlePipeline = Depends(get_article_pipeline),  # noqa: B008
) -> ArticleJobStatusResponse:
  """Return the job snapshot with per-section progress."""
  return await article_service.get_article_status(pipeline, job_id, user_id=user_id)
