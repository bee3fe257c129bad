"""Stage orchestration for long-form article jobs.

Each public coroutine handles one caller-driven stage invocation: it reads the job, checks
the stage guard, talks to the assistants service for at most one bounded poll window, and
persists the outcome. Nothing runs in the background; an unsettled run is reported as
``in_progress`` and picked up again by the next invocation of the same stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from app.ai.assistants import AssistantsClient, AssistantServiceError, RunPoll
from app.ai.polling import Clock, PollBudget, SystemClock, poll_until_settled
from app.articles.assembler import assemble_html
from app.articles.errors import Forbidden, GenerationFailed, InvalidInput, InvalidState, NotFound
from app.articles.models import (
  ArticleJobRecord,
  ArticleJobStatus,
  ArticleParameters,
  FinalizeResult,
  ResearchPayload,
  ResearchPollResult,
  RunRef,
  SectionArtifact,
  SectionResult,
  SeoPackage,
  SeoResult,
  StartResult,
)
from app.articles.prompts import render_cleanup_prompt, render_research_prompt, render_section_prompt, render_seo_prompt
from app.articles.research import ResearchPayloadError, parse_research_payload, parse_seo_payload
from app.articles.sanitizer import CLEANUP_KEYS, SECTION_KEYS, sanitize
from app.articles.search_gate import SearchProvider, gather_evidence
from app.articles.state import SECTION_WRITABLE_STATUSES, TERMINAL_STATUSES, ensure_can_finalize, ensure_can_write_section, has_research_run, is_past_research
from app.config import Settings
from app.storage.article_jobs_repo import SEO_RUN_KEY, ArticleJobsRepository, section_run_key
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

_LIVE_STATUSES = tuple(status for status in ArticleJobStatus if status not in TERMINAL_STATUSES)


def _now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class PipelineOptions:
  """Assistant references and time budgets for each stage."""

  research_assistant_id: str
  section_assistant_id: str
  cleanup_assistant_id: str
  seo_assistant_id: str
  research_budget: PollBudget
  section_budget: PollBudget
  cleanup_budget: PollBudget
  seo_budget: PollBudget
  search_max_results: int = 10

  @classmethod
  def from_settings(cls, settings: Settings) -> PipelineOptions:
    missing = [
      name
      for name, value in (
        ("SEOHQ_RESEARCH_ASSISTANT_ID", settings.research_assistant_id),
        ("SEOHQ_SECTION_ASSISTANT_ID", settings.section_assistant_id),
        ("SEOHQ_CLEANUP_ASSISTANT_ID", settings.cleanup_assistant_id),
        ("SEOHQ_SEO_ASSISTANT_ID", settings.seo_assistant_id),
      )
      if not value
    ]
    if missing:
      raise RuntimeError(f"Missing assistant configuration: {', '.join(missing)}")

    interval = settings.poll_interval_seconds
    return cls(
      research_assistant_id=str(settings.research_assistant_id),
      section_assistant_id=str(settings.section_assistant_id),
      cleanup_assistant_id=str(settings.cleanup_assistant_id),
      seo_assistant_id=str(settings.seo_assistant_id),
      research_budget=PollBudget(settings.research_poll_budget_seconds, interval),
      section_budget=PollBudget(settings.section_poll_budget_seconds, interval),
      cleanup_budget=PollBudget(settings.cleanup_poll_budget_seconds, interval),
      seo_budget=PollBudget(settings.seo_poll_budget_seconds, interval),
      search_max_results=settings.search_max_results,
    )


class ArticlePipeline:
  """Drive an article job through research, sections, finalize and SEO packaging."""

  def __init__(self, repo: ArticleJobsRepository, assistants: AssistantsClient, search: SearchProvider, options: PipelineOptions, *, clock: Clock | None = None) -> None:
    self._repo = repo
    self._assistants = assistants
    self._search = search
    self._options = options
    self._clock = clock or SystemClock()

  async def start_research(self, user_id: str, params: ArticleParameters) -> StartResult:
    """Create a job, run the search gate and dispatch the research run."""
    topic = params.topic.strip()
    if not topic:
      raise InvalidInput("Topic is required.")

    now = _now_iso()
    job = ArticleJobRecord(job_id=generate_job_id(), user_id=user_id, parameters=params, status=ArticleJobStatus.PENDING, created_at=now, updated_at=now)
    await self._repo.create_job(job)
    logger.info("Article job created job_id=%s user_id=%s topic=%r", job.job_id, user_id, topic)

    results = await gather_evidence(self._search, topic, language=params.language, country=params.language, max_results=self._options.search_max_results, job_id=job.job_id)
    # Keep the gate results as provisional sources until research returns its own.
    await self._repo.update_job(job.job_id, sources=results)

    # Failures before the run exists leave the job pending.
    try:
      thread_id = await self._assistants.open_conversation()
      await self._assistants.post_message(thread_id, "user", render_research_prompt(params, results))
    except AssistantServiceError as exc:
      logger.error("Research dispatch failed job_id=%s: %s", job.job_id, exc)
      raise GenerationFailed(str(exc), job_id=job.job_id, job_status=ArticleJobStatus.PENDING.value) from exc

    try:
      run_id = await self._assistants.start_run(thread_id, self._options.research_assistant_id)
    except AssistantServiceError as exc:
      await self._fail(job.job_id, f"Research run could not start: {exc}")
      raise GenerationFailed(str(exc), job_id=job.job_id, job_status=ArticleJobStatus.FAILED.value) from exc

    updated = await self._repo.update_job(job.job_id, expected_status=(ArticleJobStatus.PENDING,), status=ArticleJobStatus.GENERATING, thread_id=thread_id, run_id=run_id)
    if updated is None:
      raise InvalidState("Job left the pending state before research started.", job_id=job.job_id)
    logger.info("Job transition job_id=%s pending -> generating thread_id=%s run_id=%s", job.job_id, thread_id, run_id)
    return StartResult(job_id=job.job_id, thread_id=thread_id, run_id=run_id, status=updated.status)

  async def poll_research(self, user_id: str, job_id: str) -> ResearchPollResult:
    """Check the research run once per budget window and persist its plan when done."""
    job = await self._load_owned(user_id, job_id)

    if is_past_research(job.status):
      return self._research_done(job)

    if job.status == ArticleJobStatus.FAILED:
      raise GenerationFailed(job.error or "Research failed.", job_id=job_id, job_status=job.status.value)

    if not has_research_run(job):
      return ResearchPollResult(job_id=job_id, state="pending", status=job.status, message="Research has not started yet.")

    outcome = await self._poll_job_run(job, RunRef(str(job.thread_id), str(job.run_id)), self._options.research_budget)
    if outcome.state != "completed":
      return ResearchPollResult(job_id=job_id, state="in_progress", status=job.status, message="Research is still running.")

    try:
      research = parse_research_payload(outcome.text)
    except ResearchPayloadError as exc:
      await self._fail(job_id, str(exc))
      raise GenerationFailed(str(exc), job_id=job_id, job_status=ArticleJobStatus.FAILED.value) from exc

    sources = research.sources or job.sources
    updated = await self._repo.update_job(
      job_id,
      expected_status=(ArticleJobStatus.GENERATING,),
      status=ArticleJobStatus.RESEARCH_COMPLETED,
      outline=research.outline,
      section_notes=research.section_notes,
      sources=sources,
    )
    if updated is None:
      # A concurrent poll finished first; report whatever it stored.
      return self._research_done(await self._load_owned(user_id, job_id))

    logger.info("Job transition job_id=%s generating -> research_completed sections=%d", job_id, len(research.outline.sections))
    return self._research_done(updated)

  async def generate_section(self, user_id: str, job_id: str, section_id: str) -> SectionResult:
    """Generate (or resume generating) the HTML for one outline section."""
    job = await self._load_owned(user_id, job_id)
    section = ensure_can_write_section(job, section_id)

    if job.status == ArticleJobStatus.RESEARCH_COMPLETED:
      moved = await self._repo.update_job(job_id, expected_status=(ArticleJobStatus.RESEARCH_COMPLETED,), status=ArticleJobStatus.WRITING_SECTIONS)
      if moved is not None:
        logger.info("Job transition job_id=%s research_completed -> writing_sections", job_id)
        job = moved
      else:
        job = await self._load_owned(user_id, job_id)
        if job.status not in SECTION_WRITABLE_STATUSES:
          raise InvalidState(f"Sections cannot be generated while the job is {job.status.value}.", job_id=job_id, job_status=job.status.value)

    run_key = section_run_key(section_id)
    ref = job.pending_runs.get(run_key)
    if ref is None:
      try:
        thread_id = await self._assistants.open_conversation()
        await self._assistants.post_message(thread_id, "user", render_section_prompt(job.parameters, section, job.section_notes.get(section_id)))
        run_id = await self._assistants.start_run(thread_id, self._options.section_assistant_id)
      except AssistantServiceError as exc:
        logger.error("Section dispatch failed job_id=%s section_id=%s: %s", job_id, section_id, exc)
        raise GenerationFailed(f"Section {section_id} could not start: {exc}", job_id=job_id, job_status=job.status.value) from exc
      ref = RunRef(thread_id=thread_id, run_id=run_id)
      await self._repo.set_pending_run(job_id, run_key, ref)
    else:
      logger.info("Resuming section run job_id=%s section_id=%s run_id=%s", job_id, section_id, ref.run_id)

    try:
      outcome = await self._poll(ref, self._options.section_budget)
    except AssistantServiceError as exc:
      # Keep the pending run so a retry resumes polling it.
      raise GenerationFailed(f"Section {section_id}: {exc}", job_id=job_id, job_status=job.status.value) from exc

    if outcome.state == "failed":
      await self._repo.set_pending_run(job_id, run_key, None)
      logger.warning("Section run failed job_id=%s section_id=%s reason=%s", job_id, section_id, outcome.reason)
      raise GenerationFailed(f"Section {section_id}: {outcome.reason}", job_id=job_id, job_status=job.status.value)

    if outcome.state != "completed":
      return SectionResult(job_id=job_id, section_id=section_id, state="in_progress", status=job.status, message="Section is still being written.")

    html = sanitize(outcome.text, SECTION_KEYS).strip()
    if not html:
      await self._repo.set_pending_run(job_id, run_key, None)
      raise GenerationFailed(f"Section {section_id}: assistant returned no content.", job_id=job_id, job_status=job.status.value)

    artifact = SectionArtifact(section_id=section_id, html=html, completed_at=_now_iso())
    updated = await self._repo.upsert_section(job_id, artifact, expected_status=tuple(SECTION_WRITABLE_STATUSES))
    if updated is None:
      # The job moved on (or vanished) while the run was being polled.
      current = await self._repo.get_job(job_id)
      if current is None:
        raise NotFound("Job not found.", job_id=job_id)
      logger.warning("Discarding section output job_id=%s section_id=%s status=%s", job_id, section_id, current.status.value)
      raise InvalidState(f"Section {section_id} finished after the job became {current.status.value}.", job_id=job_id, job_status=current.status.value)
    logger.info("Section stored job_id=%s section_id=%s chars=%d", job_id, section_id, len(html))
    return SectionResult(job_id=job_id, section_id=section_id, state="completed", status=updated.status, message="Section generated.", html=html)

  async def finalize(self, user_id: str, job_id: str) -> FinalizeResult:
    """Assemble completed sections, run the cleanup pass and store the final HTML."""
    job = await self._load_owned(user_id, job_id)

    if job.status == ArticleJobStatus.COMPLETED:
      return FinalizeResult(job_id=job_id, state="completed", status=job.status, message="Article already finalized.", final_html=job.final_html)

    if job.status == ArticleJobStatus.FINALIZING and has_research_run(job):
      ref = RunRef(str(job.thread_id), str(job.run_id))
      logger.info("Resuming cleanup run job_id=%s run_id=%s", job_id, ref.run_id)
    else:
      ensure_can_finalize(job)
      draft = assemble_html(job.sections, job.outline)
      try:
        thread_id = await self._assistants.open_conversation()
        await self._assistants.post_message(thread_id, "user", render_cleanup_prompt(job.parameters, draft))
        run_id = await self._assistants.start_run(thread_id, self._options.cleanup_assistant_id)
      except AssistantServiceError as exc:
        await self._fail(job_id, f"Cleanup run could not start: {exc}")
        raise GenerationFailed(str(exc), job_id=job_id, job_status=ArticleJobStatus.FAILED.value) from exc

      moved = await self._repo.update_job(job_id, expected_status=(ArticleJobStatus.WRITING_SECTIONS,), status=ArticleJobStatus.FINALIZING, thread_id=thread_id, run_id=run_id)
      if moved is None:
        raise InvalidState("Job changed state while finalize was starting.", job_id=job_id)
      logger.info("Job transition job_id=%s writing_sections -> finalizing run_id=%s", job_id, run_id)
      job = moved
      ref = RunRef(thread_id=thread_id, run_id=run_id)

    outcome = await self._poll_job_run(job, ref, self._options.cleanup_budget)
    if outcome.state != "completed":
      return FinalizeResult(job_id=job_id, state="in_progress", status=job.status, message="Final cleanup is still running.")

    final_html = sanitize(outcome.text, CLEANUP_KEYS).strip()
    if not final_html:
      await self._fail(job_id, "Cleanup returned no content.")
      raise GenerationFailed("Cleanup returned no content.", job_id=job_id, job_status=ArticleJobStatus.FAILED.value)

    updated = await self._repo.update_job(job_id, expected_status=(ArticleJobStatus.FINALIZING,), status=ArticleJobStatus.COMPLETED, final_html=final_html)
    if updated is None:
      current = await self._load_owned(user_id, job_id)
      if current.status != ArticleJobStatus.COMPLETED:
        raise InvalidState(f"Job left finalizing as {current.status.value}.", job_id=job_id, job_status=current.status.value)
      updated = current

    logger.info("Job transition job_id=%s finalizing -> completed chars=%d", job_id, len(updated.final_html or ""))
    return FinalizeResult(job_id=job_id, state="completed", status=updated.status, message="Article finalized.", final_html=updated.final_html)

  async def generate_seo(self, user_id: str, job_id: str) -> SeoResult:
    """Produce meta tags, H1, FAQ and semantic topics for a completed article."""
    job = await self._load_owned(user_id, job_id)
    if job.status != ArticleJobStatus.COMPLETED or not job.final_html:
      raise InvalidState("SEO metadata requires a completed article.", job_id=job_id, job_status=job.status.value)

    if job.seo:
      return SeoResult(job_id=job_id, state="completed", status=job.status, message="SEO metadata already generated.", seo=SeoPackage.from_dict(job.seo))

    ref = job.pending_runs.get(SEO_RUN_KEY)
    if ref is None:
      try:
        thread_id = await self._assistants.open_conversation()
        await self._assistants.post_message(thread_id, "user", render_seo_prompt(job.parameters, job.final_html))
        run_id = await self._assistants.start_run(thread_id, self._options.seo_assistant_id)
      except AssistantServiceError as exc:
        raise GenerationFailed(f"SEO run could not start: {exc}", job_id=job_id, job_status=job.status.value) from exc
      ref = RunRef(thread_id=thread_id, run_id=run_id)
      await self._repo.set_pending_run(job_id, SEO_RUN_KEY, ref)

    try:
      outcome = await self._poll(ref, self._options.seo_budget)
    except AssistantServiceError as exc:
      raise GenerationFailed(f"SEO: {exc}", job_id=job_id, job_status=job.status.value) from exc

    if outcome.state == "failed":
      await self._repo.set_pending_run(job_id, SEO_RUN_KEY, None)
      raise GenerationFailed(f"SEO: {outcome.reason}", job_id=job_id, job_status=job.status.value)

    if outcome.state != "completed":
      return SeoResult(job_id=job_id, state="in_progress", status=job.status, message="SEO metadata is still being generated.")

    try:
      package = parse_seo_payload(outcome.text)
    except ResearchPayloadError as exc:
      await self._repo.set_pending_run(job_id, SEO_RUN_KEY, None)
      raise GenerationFailed(f"SEO: {exc}", job_id=job_id, job_status=job.status.value) from exc

    await self._repo.update_job(job_id, meta_title=package.meta_title, meta_description=package.meta_description, seo=package.to_dict())
    await self._repo.set_pending_run(job_id, SEO_RUN_KEY, None)
    logger.info("SEO metadata stored job_id=%s", job_id)
    return SeoResult(job_id=job_id, state="completed", status=job.status, message="SEO metadata generated.", seo=package)

  async def get_status(self, user_id: str, job_id: str) -> ArticleJobRecord:
    return await self._load_owned(user_id, job_id)

  async def _load_owned(self, user_id: str, job_id: str) -> ArticleJobRecord:
    job = await self._repo.get_job(job_id)
    if job is None:
      raise NotFound("Job not found.", job_id=job_id)
    if job.user_id != user_id:
      raise Forbidden("Job belongs to another user.", job_id=job_id)
    return job

  async def _poll(self, ref: RunRef, budget: PollBudget) -> RunPoll:
    async def _check() -> RunPoll:
      return await self._assistants.poll(ref.thread_id, ref.run_id)

    return await poll_until_settled(_check, lambda outcome: outcome.is_settled, budget, self._clock)

  async def _poll_job_run(self, job: ArticleJobRecord, ref: RunRef, budget: PollBudget) -> RunPoll:
    """Poll a job-scoped run; any failure fails the whole job."""
    try:
      outcome = await self._poll(ref, budget)
    except AssistantServiceError as exc:
      await self._fail(job.job_id, str(exc))
      raise GenerationFailed(str(exc), job_id=job.job_id, job_status=ArticleJobStatus.FAILED.value) from exc

    if outcome.state == "failed":
      reason = outcome.reason or "Run failed."
      await self._fail(job.job_id, reason)
      raise GenerationFailed(reason, job_id=job.job_id, job_status=ArticleJobStatus.FAILED.value)
    return outcome

  async def _fail(self, job_id: str, message: str) -> None:
    updated = await self._repo.update_job(job_id, expected_status=_LIVE_STATUSES, status=ArticleJobStatus.FAILED, error=message)
    if updated is not None:
      logger.warning("Job transition job_id=%s -> failed error=%s", job_id, message)

  def _research_done(self, job: ArticleJobRecord) -> ResearchPollResult:
    research = None
    if job.outline is not None:
      research = ResearchPayload(outline=job.outline, section_notes=dict(job.section_notes), sources=list(job.sources))
    return ResearchPollResult(job_id=job.job_id, state="completed", status=job.status, message="Research completed.", research=research)
