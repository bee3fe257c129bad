"""Status transitions and stage guards for article jobs."""

from __future__ import annotations

from app.articles.assembler import order_sections
from app.articles.errors import InvalidState, NotFound
from app.articles.models import ArticleJobRecord, ArticleJobStatus, OutlineSection, SectionArtifact

LIFECYCLE: tuple[ArticleJobStatus, ...] = (
  ArticleJobStatus.PENDING,
  ArticleJobStatus.GENERATING,
  ArticleJobStatus.RESEARCH_COMPLETED,
  ArticleJobStatus.WRITING_SECTIONS,
  ArticleJobStatus.FINALIZING,
  ArticleJobStatus.COMPLETED,
)
TERMINAL_STATUSES = frozenset({ArticleJobStatus.COMPLETED, ArticleJobStatus.FAILED})
SECTION_WRITABLE_STATUSES = frozenset({ArticleJobStatus.RESEARCH_COMPLETED, ArticleJobStatus.WRITING_SECTIONS})


def can_transition(current: ArticleJobStatus, target: ArticleJobStatus) -> bool:
  """Return True when target is the next lifecycle step or a failure of a live job."""
  if current in TERMINAL_STATUSES:
    return False
  if target == ArticleJobStatus.FAILED:
    return True
  return LIFECYCLE.index(target) == LIFECYCLE.index(current) + 1


def ensure_transition(job: ArticleJobRecord, target: ArticleJobStatus) -> None:
  if not can_transition(job.status, target):
    raise InvalidState(f"Cannot move job from {job.status.value} to {target.value}.", job_id=job.job_id, job_status=job.status.value)


def is_past_research(status: ArticleJobStatus) -> bool:
  """True once research artifacts exist on the job."""
  return status in LIFECYCLE and LIFECYCLE.index(status) >= LIFECYCLE.index(ArticleJobStatus.RESEARCH_COMPLETED)


def has_research_run(job: ArticleJobRecord) -> bool:
  return bool(job.thread_id and job.run_id)


def ensure_can_write_section(job: ArticleJobRecord, section_id: str) -> OutlineSection:
  """Return the outline entry for section_id, or raise when generation is not allowed."""
  if job.status not in SECTION_WRITABLE_STATUSES:
    raise InvalidState(f"Sections cannot be generated while the job is {job.status.value}.", job_id=job.job_id, job_status=job.status.value)

  if job.outline is None:
    raise InvalidState("Job has no outline yet.", job_id=job.job_id, job_status=job.status.value)

  section = job.outline.find(section_id)
  if section is None:
    raise NotFound(f"Section {section_id!r} is not part of the outline.", job_id=job.job_id, job_status=job.status.value)

  return section


def ensure_can_finalize(job: ArticleJobRecord) -> list[SectionArtifact]:
  """Return the completed sections in outline order, or raise when finalize is not allowed."""
  if job.status != ArticleJobStatus.WRITING_SECTIONS:
    raise InvalidState(f"Job cannot be finalized while {job.status.value}.", job_id=job.job_id, job_status=job.status.value)

  ordered = order_sections(job.sections, job.outline)
  if not ordered:
    raise InvalidState("No completed sections to assemble.", job_id=job.job_id, job_status=job.status.value)

  return ordered
