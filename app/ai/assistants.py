"""Thread-and-run adapter over the OpenAI Assistants API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

RunState = Literal["queued", "in_progress", "completed", "failed"]

_IN_PROGRESS_STATUSES = {"in_progress", "cancelling"}
_FAILED_STATUSES = {"failed", "cancelled", "expired", "incomplete", "requires_action"}


class AssistantServiceError(RuntimeError):
  """Raised when the AI service rejects or cannot serve a request."""


@dataclass(frozen=True)
class RunPoll:
  """Outcome of a single run status check."""

  state: RunState
  text: str | None = None
  reason: str | None = None

  @property
  def is_settled(self) -> bool:
    return self.state in {"completed", "failed"}


class AssistantsClient(Protocol):
  """Conversation thread plus asynchronous run operations."""

  async def open_conversation(self) -> str:
    """Create a thread and return its id."""

  async def post_message(self, thread_id: str, role: str, text: str) -> None:
    """Append a message to a thread."""

  async def start_run(self, thread_id: str, assistant_id: str) -> str:
    """Start an assistant run on a thread and return its id."""

  async def poll(self, thread_id: str, run_id: str) -> RunPoll:
    """Check a run once."""


def _message_text(message: Any) -> str:
  parts: list[str] = []
  for block in getattr(message, "content", None) or []:
    if getattr(block, "type", None) == "text":
      parts.append(block.text.value)
  return "".join(parts)


class OpenAIAssistantsClient:
  """AssistantsClient backed by AsyncOpenAI."""

  def __init__(self, api_key: str | None, *, base_url: str | None = None, client: AsyncOpenAI | None = None) -> None:
    if client is None:
      if not api_key:
        raise ValueError("OPENAI_API_KEY is required for the assistants client.")
      client = AsyncOpenAI(api_key=api_key, base_url=base_url)
    self._client = client

  async def open_conversation(self) -> str:
    try:
      thread = await self._client.beta.threads.create()
    except OpenAIError as exc:
      raise AssistantServiceError(f"Failed to create thread: {exc}") from exc
    return thread.id

  async def post_message(self, thread_id: str, role: str, text: str) -> None:
    try:
      await self._client.beta.threads.messages.create(thread_id, role=role, content=text)
    except OpenAIError as exc:
      raise AssistantServiceError(f"Failed to post message to thread {thread_id}: {exc}") from exc

  async def start_run(self, thread_id: str, assistant_id: str) -> str:
    try:
      run = await self._client.beta.threads.runs.create(thread_id, assistant_id=assistant_id)
    except OpenAIError as exc:
      raise AssistantServiceError(f"Failed to start run on thread {thread_id}: {exc}") from exc
    logger.info("Started run thread_id=%s run_id=%s assistant_id=%s", thread_id, run.id, assistant_id)
    return run.id

  async def poll(self, thread_id: str, run_id: str) -> RunPoll:
    try:
      run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
    except OpenAIError as exc:
      raise AssistantServiceError(f"Failed to retrieve run {run_id}: {exc}") from exc

    status = str(run.status)
    if status == "queued":
      return RunPoll(state="queued")
    if status in _IN_PROGRESS_STATUSES:
      return RunPoll(state="in_progress")
    if status in _FAILED_STATUSES:
      last_error = getattr(run, "last_error", None)
      reason = getattr(last_error, "message", None) or f"Run {status}"
      logger.warning("Run settled unsuccessfully thread_id=%s run_id=%s status=%s reason=%s", thread_id, run_id, status, reason)
      return RunPoll(state="failed", reason=reason)
    if status != "completed":
      return RunPoll(state="in_progress")

    text = await self._latest_reply(thread_id, run_id)
    if not text:
      return RunPoll(state="failed", reason="Run completed without an assistant reply")
    return RunPoll(state="completed", text=text)

  async def _latest_reply(self, thread_id: str, run_id: str) -> str | None:
    """Return the newest assistant message, preferring the one written by run_id."""
    try:
      page = await self._client.beta.threads.messages.list(thread_id, limit=10, order="desc")
    except OpenAIError as exc:
      raise AssistantServiceError(f"Failed to list messages on thread {thread_id}: {exc}") from exc

    fallback: str | None = None
    for message in page.data:
      if message.role != "assistant":
        continue
      text = _message_text(message)
      if not text:
        continue
      if getattr(message, "run_id", None) == run_id:
        return text
      if fallback is None:
        fallback = text
    return fallback
