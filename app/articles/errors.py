"""Error taxonomy for the article generation pipeline."""

from __future__ import annotations

from typing import Any


class ArticlePipelineError(Exception):
  """Base error carrying an error code and the HTTP status it maps to."""

  code = "ARTICLE_ERROR"
  status_code = 500

  def __init__(self, message: str, *, job_id: str | None = None, job_status: str | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.job_id = job_id
    self.job_status = job_status

  def to_detail(self) -> dict[str, Any]:
    detail: dict[str, Any] = {"error": self.code, "message": self.message}
    if self.job_id:
      detail["jobId"] = self.job_id
    if self.job_status:
      detail["jobStatus"] = self.job_status
    return detail


class Unauthenticated(ArticlePipelineError):
  code = "UNAUTHENTICATED"
  status_code = 401


class Forbidden(ArticlePipelineError):
  code = "FORBIDDEN"
  status_code = 403


class NotFound(ArticlePipelineError):
  code = "NOT_FOUND"
  status_code = 404


class InvalidInput(ArticlePipelineError):
  code = "INVALID_INPUT"
  status_code = 400


class InvalidState(ArticlePipelineError):
  code = "INVALID_STATE"
  status_code = 409


class PrecheckFailed(ArticlePipelineError):
  """Raised when the search gate finds too little evidence to start a run."""

  code = "PRECHECK_FAILED"
  status_code = 422


class GenerationFailed(ArticlePipelineError):
  """Raised when an AI run fails or returns unusable output."""

  code = "GENERATION_FAILED"
  status_code = 502


class SearchUnavailable(GenerationFailed):
  """Raised when the search provider itself errors."""

  code = "SEARCH_UNAVAILABLE"
