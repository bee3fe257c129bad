"""Bounded polling of asynchronous runs with an injectable clock."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Clock(Protocol):
  """Time source used by polling loops."""

  def monotonic(self) -> float:
    """Return a monotonic timestamp in seconds."""

  async def sleep(self, seconds: float) -> None:
    """Suspend for the given number of seconds."""


class SystemClock:
  """Wall-clock implementation backed by asyncio."""

  def monotonic(self) -> float:
    return time.monotonic()

  async def sleep(self, seconds: float) -> None:
    await asyncio.sleep(seconds)


@dataclass(frozen=True)
class PollBudget:
  """How long a stage may wait on a run, and how often it checks."""

  timeout_seconds: float
  interval_seconds: float = 1.0


async def poll_until_settled(check: Callable[[], Awaitable[T]], is_settled: Callable[[T], bool], budget: PollBudget, clock: Clock) -> T:
  """Call check until is_settled returns True or the budget runs out.

  The first check happens immediately. No sleep extends past the deadline, and when the
  budget is exhausted the last unsettled outcome is returned instead of raising.
  """
  deadline = clock.monotonic() + budget.timeout_seconds
  attempts = 0
  while True:
    outcome = await check()
    attempts += 1
    if is_settled(outcome):
      return outcome

    remaining = deadline - clock.monotonic()
    if remaining <= 0:
      logger.info("Poll budget of %.1fs exhausted after %d attempt(s)", budget.timeout_seconds, attempts)
      return outcome

    await clock.sleep(min(budget.interval_seconds, remaining))
