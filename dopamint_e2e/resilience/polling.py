"""Condition polling: evaluate a predicate at a fixed interval until a deadline."""

import asyncio
import inspect
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from loguru import logger

from dopamint_e2e.core.exceptions import PollTimeoutError
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.resolution import resolve

Predicate = Callable[[], Union[bool, Awaitable[bool]]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollSpec:
    """Stateless description of one wait: what to check, how often, how long."""

    predicate: Predicate
    interval_ms: float
    timeout_ms: float
    description: str = "condition"

    def __post_init__(self) -> None:
        if not math.isfinite(self.timeout_ms) or self.timeout_ms < 0:
            raise ValueError(f"timeout_ms must be finite and >= 0, got {self.timeout_ms}")
        if not math.isfinite(self.interval_ms) or self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {self.interval_ms}")


@dataclass(frozen=True)
class PollOutcome:
    """Success or timeout, with the elapsed time and number of evaluations."""

    success: bool
    elapsed_ms: float
    attempts: int
    timeout_ms: float
    description: str = "condition"

    @property
    def timed_out(self) -> bool:
        return not self.success

    def __bool__(self) -> bool:
        return self.success

    def raise_for_timeout(self, step: Optional[str] = None) -> "PollOutcome":
        """
        Turn a timeout into an exception.

        Args:
            step: Step name for the error (defaults to the poll description)

        Returns:
            self, when the poll succeeded

        Raises:
            PollTimeoutError: If the poll timed out
        """
        if not self.success:
            raise PollTimeoutError(step or self.description, self.elapsed_ms, self.timeout_ms)
        return self


async def _evaluate(predicate: Predicate, description: str) -> bool:
    """Run a sync or async predicate; any error counts as False."""
    try:
        result = predicate()
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
    except Exception as e:
        logger.debug(f"Predicate '{description}' raised {type(e).__name__}: {e}")
        return False


async def poll_until(
    spec: PollSpec,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> PollOutcome:
    """
    Poll ``spec.predicate`` until it holds or the deadline passes.

    The first evaluation happens immediately. After every false evaluation
    the deadline is checked, the task suspends for ``interval_ms`` and the
    deadline is checked again before the next evaluation. A predicate that
    never holds therefore times out with elapsed time within
    ``[timeout_ms, timeout_ms + interval_ms]``.

    Args:
        spec: What to poll
        clock: Monotonic clock in seconds
        sleep: Async sleep taking seconds

    Returns:
        PollOutcome; timeouts are returned, not raised
    """
    start = clock()
    attempts = 0

    def elapsed_ms() -> float:
        return (clock() - start) * 1000

    while True:
        attempts += 1
        if await _evaluate(spec.predicate, spec.description):
            elapsed = elapsed_ms()
            logger.debug(f"⏱️ {spec.description}: true after {attempts} check(s), {elapsed:.0f}ms")
            return PollOutcome(True, elapsed, attempts, spec.timeout_ms, spec.description)

        if elapsed_ms() >= spec.timeout_ms:
            break
        await sleep(spec.interval_ms / 1000)
        if elapsed_ms() >= spec.timeout_ms:
            break

    elapsed = elapsed_ms()
    logger.debug(f"⌛ {spec.description}: timed out after {attempts} check(s), {elapsed:.0f}ms")
    return PollOutcome(False, elapsed, attempts, spec.timeout_ms, spec.description)


async def wait_until(
    predicate: Predicate,
    *,
    timeout_ms: float,
    interval_ms: float,
    step: str,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> PollOutcome:
    """
    Poll and raise on timeout.

    Raises:
        PollTimeoutError: If the predicate never held
    """
    spec = PollSpec(predicate, interval_ms=interval_ms, timeout_ms=timeout_ms, description=step)
    outcome = await poll_until(spec, clock=clock, sleep=sleep)
    return outcome.raise_for_timeout(step)


def visible(driver: PageDriver, candidate: LocatorCandidate, check_timeout_ms: int) -> Predicate:
    """Predicate: some strategy of ``candidate`` is visible."""

    async def check() -> bool:
        return (await resolve(driver, candidate, check_timeout_ms)).found

    return check


def hidden(driver: PageDriver, candidate: LocatorCandidate, check_timeout_ms: int = 0) -> Predicate:
    """Predicate: no strategy of ``candidate`` is visible.

    Check errors read as "not visible", so a broken page also reads as hidden.
    """

    async def check() -> bool:
        return not (await resolve(driver, candidate, check_timeout_ms)).found

    return check
