"""Domain models for long-form article generation jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class ArticleJobStatus(str, Enum):
  """Lifecycle states of an article job."""

  PENDING = "pending"
  GENERATING = "generating"
  RESEARCH_COMPLETED = "research_completed"
  WRITING_SECTIONS = "writing_sections"
  FINALIZING = "finalizing"
  COMPLETED = "completed"
  FAILED = "failed"


StageState = Literal["pending", "in_progress", "completed"]


@dataclass(frozen=True)
class ArticleParameters:
  """Immutable inputs captured when a job is created."""

  topic: str
  language: str = "RU"
  audience: str = "general"
  author_persona: str = "expert"
  angle: str = "informative"
  content_goal: str = "SEO article"
  desired_length: int = 2000
  complexity: str = "medium"
  constraints: str | None = None


@dataclass(frozen=True)
class OutlineSection:
  section_id: str
  title: str
  description: str = ""

  def to_dict(self) -> dict[str, Any]:
    return {"id": self.section_id, "title": self.title, "description": self.description}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> OutlineSection:
    return cls(section_id=str(payload["id"]), title=str(payload.get("title") or ""), description=str(payload.get("description") or ""))


@dataclass(frozen=True)
class Outline:
  """Ordered article plan produced by the research stage."""

  title: str
  sections: tuple[OutlineSection, ...]

  def index_of(self, section_id: str) -> int | None:
    """Return the outline position of a section id, or None when unknown."""
    for index, section in enumerate(self.sections):
      if section.section_id == section_id:
        return index
    return None

  def find(self, section_id: str) -> OutlineSection | None:
    index = self.index_of(section_id)
    if index is None:
      return None
    return self.sections[index]

  def to_dict(self) -> dict[str, Any]:
    return {"title": self.title, "sections": [section.to_dict() for section in self.sections]}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> Outline:
    sections = tuple(OutlineSection.from_dict(item) for item in payload.get("sections") or [])
    return cls(title=str(payload.get("title") or ""), sections=sections)


@dataclass(frozen=True)
class SearchResult:
  """One ranked search result, also used for research sources."""

  url: str
  title: str = ""
  snippet: str = ""

  def to_dict(self) -> dict[str, str]:
    return {"url": self.url, "title": self.title, "snippet": self.snippet}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> SearchResult:
    return cls(url=str(payload.get("url") or ""), title=str(payload.get("title") or ""), snippet=str(payload.get("snippet") or ""))


@dataclass(frozen=True)
class SectionArtifact:
  """Generated HTML for one outline section."""

  section_id: str
  html: str
  completed_at: str
  status: str = "completed"

  def to_dict(self) -> dict[str, Any]:
    return {"sectionId": self.section_id, "html": self.html, "status": self.status, "completedAt": self.completed_at}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> SectionArtifact:
    return cls(section_id=str(payload["sectionId"]), html=str(payload.get("html") or ""), status=str(payload.get("status") or "completed"), completed_at=str(payload.get("completedAt") or ""))


@dataclass(frozen=True)
class RunRef:
  """Reference to an asynchronous run on a conversation thread."""

  thread_id: str
  run_id: str

  def to_dict(self) -> dict[str, str]:
    return {"threadId": self.thread_id, "runId": self.run_id}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> RunRef:
    return cls(thread_id=str(payload["threadId"]), run_id=str(payload["runId"]))


@dataclass
class ArticleJobRecord:
  """Persistent state of one article generation job."""

  job_id: str
  user_id: str
  parameters: ArticleParameters
  status: ArticleJobStatus
  created_at: str
  updated_at: str
  thread_id: str | None = None
  run_id: str | None = None
  outline: Outline | None = None
  section_notes: dict[str, str] = field(default_factory=dict)
  sources: list[SearchResult] = field(default_factory=list)
  sections: list[SectionArtifact] = field(default_factory=list)
  pending_runs: dict[str, RunRef] = field(default_factory=dict)
  final_html: str | None = None
  meta_title: str | None = None
  meta_description: str | None = None
  seo: dict[str, Any] | None = None
  error: str | None = None

  def section(self, section_id: str) -> SectionArtifact | None:
    for artifact in self.sections:
      if artifact.section_id == section_id:
        return artifact
    return None


@dataclass(frozen=True)
class ResearchPayload:
  """Parsed output of the research run."""

  outline: Outline
  section_notes: dict[str, str]
  sources: list[SearchResult]


@dataclass(frozen=True)
class SeoPackage:
  """Parsed output of the SEO packaging run."""

  meta_title: str
  meta_description: str
  h1: str = ""
  faq: list[dict[str, str]] = field(default_factory=list)
  semantic_topics: list[str] = field(default_factory=list)

  def to_dict(self) -> dict[str, Any]:
    return {"metaTitle": self.meta_title, "metaDescription": self.meta_description, "h1": self.h1, "faq": list(self.faq), "semanticTopics": list(self.semantic_topics)}

  @classmethod
  def from_dict(cls, payload: dict[str, Any]) -> SeoPackage:
    return cls(
      meta_title=str(payload.get("metaTitle") or ""),
      meta_description=str(payload.get("metaDescription") or ""),
      h1=str(payload.get("h1") or ""),
      faq=list(payload.get("faq") or []),
      semantic_topics=list(payload.get("semanticTopics") or []),
    )


@dataclass(frozen=True)
class StartResult:
  job_id: str
  thread_id: str
  run_id: str
  status: ArticleJobStatus


@dataclass(frozen=True)
class ResearchPollResult:
  job_id: str
  state: StageState
  status: ArticleJobStatus
  message: str
  research: ResearchPayload | None = None


@dataclass(frozen=True)
class SectionResult:
  job_id: str
  section_id: str
  state: StageState
  status: ArticleJobStatus
  message: str
  html: str | None = None


@dataclass(frozen=True)
class FinalizeResult:
  job_id: str
  state: StageState
  status: ArticleJobStatus
  message: str
  final_html: str | None = None


@dataclass(frozen=True)
class SeoResult:
  job_id: str
  state: StageState
  status: ArticleJobStatus
  message: str
  seo: SeoPackage | None = None
