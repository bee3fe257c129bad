from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

StageState = Literal["pending", "in_progress", "completed"]


def _to_camel(string: str) -> str:
  """Convert snake_case to camelCase so the API speaks the dashboard's payload style."""
  parts = string.split("_")
  if not parts:
    return string
  return parts[0] + "".join(part[:1].upper() + part[1:] for part in parts[1:])


class _CamelModel(BaseModel):
  model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="ignore")


class StartArticleRequest(_CamelModel):
  """Parameters for a new article job."""

  topic: StrictStr = Field(..., min_length=1, max_length=500, description="Article topic, also used as the search query.")
  language: StrictStr | None = Field(default=None, min_length=2, max_length=10, description="Output language code. Defaults to the service default.")
  audience: StrictStr = Field(default="general", max_length=200)
  author_persona: StrictStr = Field(default="expert", max_length=200)
  angle: StrictStr = Field(default="informative", max_length=200)
  content_goal: StrictStr = Field(default="SEO article", max_length=200)
  desired_length: int = Field(default=2000, ge=300, le=20000, description="Target length in words.")
  complexity: StrictStr = Field(default="medium", max_length=50)
  constraints: StrictStr | None = Field(default=None, max_length=4000)

  @field_validator("topic")
  @classmethod
  def _topic_not_blank(cls, value: str) -> str:
    if not value.strip():
      raise ValueError("topic must not be blank")
    return value.strip()


class OutlineSectionModel(BaseModel):
  id: str
  title: str
  description: str = ""


class OutlineModel(BaseModel):
  title: str
  sections: list[OutlineSectionModel]


class SourceModel(BaseModel):
  url: str
  title: str = ""
  snippet: str = ""


class ResearchResultModel(_CamelModel):
  outline: OutlineModel
  section_notes: dict[str, str]
  sources: list[SourceModel]


class FaqModel(BaseModel):
  question: str
  answer: str


class SeoPackageModel(_CamelModel):
  meta_title: str
  meta_description: str
  h1: str = ""
  faq: list[FaqModel] = Field(default_factory=list)
  semantic_topics: list[str] = Field(default_factory=list)


class StartArticleResponse(_CamelModel):
  success: bool = True
  job_id: str
  thread_id: str
  run_id: str
  status: str
  message: str = "Research started."


class ResearchStatusResponse(_CamelModel):
  success: bool = True
  job_id: str
  status: StageState
  job_status: str
  message: str
  result: ResearchResultModel | None = None


class SectionResponse(_CamelModel):
  success: bool = True
  job_id: str
  section_id: str
  status: StageState
  job_status: str
  message: str
  section_html: str | None = None


class FinalizeResponse(_CamelModel):
  success: bool = True
  job_id: str
  status: StageState
  job_status: str
  message: str
  final_html: str | None = None


class SeoResponse(_CamelModel):
  success: bool = True
  job_id: str
  status: StageState
  job_status: str
  message: str
  seo: SeoPackageModel | None = None


class SectionProgressModel(_CamelModel):
  section_id: str
  title: str
  status: Literal["pending", "in_progress", "completed"]
  completed_at: str | None = None


class ProgressModel(_CamelModel):
  total_sections: int
  completed_sections: int
  sections: list[SectionProgressModel]


class ArticleJobStatusResponse(_CamelModel):
  success: bool = True
  job_id: str
  status: str
  message: str
  topic: str
  language: str
  outline: OutlineModel | None = None
  sources: list[SourceModel] = Field(default_factory=list)
  progress: ProgressModel
  final_html: str | None = None
  meta_title: str | None = None
  meta_description: str | None = None
  error: str | None = None
  created_at: str
  updated_at: str
