from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from app.ai.assistants import AssistantServiceError, OpenAIAssistantsClient


def _message(role: str, text: str, run_id: str | None = None) -> SimpleNamespace:
  block = SimpleNamespace(type="text", text=SimpleNamespace(value=text))
  return SimpleNamespace(role=role, run_id=run_id, content=[block])


def _client(status: str, *, messages: list[SimpleNamespace] | None = None, last_error: object | None = None) -> MagicMock:
  client = MagicMock()
  client.beta.threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_1"))
  client.beta.threads.messages.create = AsyncMock(return_value=None)
  client.beta.threads.runs.create = AsyncMock(return_value=SimpleNamespace(id="run_1"))
  client.beta.threads.runs.retrieve = AsyncMock(return_value=SimpleNamespace(status=status, last_error=last_error))
  client.beta.threads.messages.list = AsyncMock(return_value=SimpleNamespace(data=messages or []))
  return client


@pytest.mark.anyio
async def test_dispatch_calls_thread_message_and_run_endpoints() -> None:
  raw = _client("queued")
  adapter = OpenAIAssistantsClient(None, client=raw)

  thread_id = await adapter.open_conversation()
  await adapter.post_message(thread_id, "user", "Write it")
  run_id = await adapter.start_run(thread_id, "asst_1")

  assert (thread_id, run_id) == ("thread_1", "run_1")
  raw.beta.threads.messages.create.assert_awaited_once_with("thread_1", role="user", content="Write it")
  raw.beta.threads.runs.create.assert_awaited_once_with("thread_1", assistant_id="asst_1")


@pytest.mark.anyio
@pytest.mark.parametrize(("status", "state"), [("queued", "queued"), ("in_progress", "in_progress"), ("cancelling", "in_progress")])
async def test_unsettled_statuses(status: str, state: str) -> None:
  outcome = await OpenAIAssistantsClient(None, client=_client(status)).poll("thread_1", "run_1")
  assert outcome.state == state
  assert not outcome.is_settled


@pytest.mark.anyio
@pytest.mark.parametrize("status", ["failed", "cancelled", "expired", "incomplete", "requires_action"])
async def test_terminal_failures_carry_a_reason(status: str) -> None:
  outcome = await OpenAIAssistantsClient(None, client=_client(status)).poll("thread_1", "run_1")
  assert outcome.state == "failed"
  assert outcome.reason == f"Run {status}"


@pytest.mark.anyio
async def test_failure_reason_comes_from_last_error() -> None:
  raw = _client("failed", last_error=SimpleNamespace(message="rate limited"))
  outcome = await OpenAIAssistantsClient(None, client=raw).poll("thread_1", "run_1")
  assert outcome.reason == "rate limited"


@pytest.mark.anyio
async def test_completed_run_prefers_reply_from_same_run() -> None:
  messages = [_message("assistant", "newer other run", run_id="run_9"), _message("user", "prompt"), _message("assistant", "<p>mine</p>", run_id="run_1")]
  raw = _client("completed", messages=messages)
  outcome = await OpenAIAssistantsClient(None, client=raw).poll("thread_1", "run_1")
  assert outcome.state == "completed"
  assert outcome.text == "<p>mine</p>"
  raw.beta.threads.messages.list.assert_awaited_once_with("thread_1", limit=10, order="desc")


@pytest.mark.anyio
async def test_completed_run_falls_back_to_latest_assistant_reply() -> None:
  raw = _client("completed", messages=[_message("assistant", "latest"), _message("assistant", "older")])
  outcome = await OpenAIAssistantsClient(None, client=raw).poll("thread_1", "run_1")
  assert outcome.text == "latest"


@pytest.mark.anyio
async def test_completed_run_without_reply_is_a_failure() -> None:
  outcome = await OpenAIAssistantsClient(None, client=_client("completed", messages=[_message("user", "prompt")])).poll("thread_1", "run_1")
  assert outcome.state == "failed"
  assert outcome.reason == "Run completed without an assistant reply"


@pytest.mark.anyio
async def test_transport_errors_are_wrapped() -> None:
  raw = _client("queued")
  raw.beta.threads.runs.retrieve = AsyncMock(side_effect=OpenAIError("connection reset"))
  with pytest.raises(AssistantServiceError, match="connection reset"):
    await OpenAIAssistantsClient(None, client=raw).poll("thread_1", "run_1")


def test_api_key_required_without_injected_client() -> None:
  with pytest.raises(ValueError):
    OpenAIAssistantsClient(None)
