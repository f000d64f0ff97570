"""Tests for condition polling."""

import asyncio
import math

import pytest

from dopamint_e2e.core.exceptions import PollTimeoutError
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.polling import (
    PollOutcome,
    PollSpec,
    hidden,
    poll_until,
    visible,
    wait_until,
)


class TestPollSpec:
    """Test PollSpec validation."""

    @pytest.mark.parametrize("timeout", [-1, math.inf, math.nan])
    def test_rejects_bad_timeout(self, timeout):
        """Test negative or non-finite timeouts are rejected."""
        with pytest.raises(ValueError):
            PollSpec(lambda: True, interval_ms=100, timeout_ms=timeout)

    @pytest.mark.parametrize("interval", [0, -5])
    def test_rejects_bad_interval(self, interval):
        """Test non-positive intervals are rejected."""
        with pytest.raises(ValueError):
            PollSpec(lambda: True, interval_ms=interval, timeout_ms=1000)


class TestPollUntil:
    """Test poll_until timing semantics."""

    @pytest.mark.asyncio
    async def test_immediate_success_does_not_sleep(self, clock):
        """Test a predicate true on first check returns without sleeping."""
        outcome = await poll_until(
            PollSpec(lambda: True, interval_ms=500, timeout_ms=5000),
            clock=clock,
            sleep=clock.sleep,
        )

        assert outcome.success
        assert outcome.attempts == 1
        assert outcome.elapsed_ms == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_succeeds_on_later_attempt(self, clock):
        """Test polling continues until the predicate holds."""
        answers = iter([False, False, True])

        outcome = await poll_until(
            PollSpec(lambda: next(answers), interval_ms=500, timeout_ms=5000),
            clock=clock,
            sleep=clock.sleep,
        )

        assert outcome.success
        assert outcome.attempts == 3
        assert outcome.elapsed_ms == pytest.approx(1000)
        assert clock.sleeps == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_timeout_elapsed_within_bounds(self, clock):
        """Test a never-true predicate times out within [timeout, timeout + interval]."""
        outcome = await poll_until(
            PollSpec(lambda: False, interval_ms=300, timeout_ms=1000, description="never"),
            clock=clock,
            sleep=clock.sleep,
        )

        assert not outcome
        assert outcome.timed_out
        assert 1000 <= outcome.elapsed_ms <= 1300
        assert outcome.description == "never"

    @pytest.mark.asyncio
    async def test_zero_timeout_evaluates_once(self, clock):
        """Test timeout 0 checks exactly once."""
        calls = []

        def predicate():
            calls.append(1)
            return False

        outcome = await poll_until(
            PollSpec(predicate, interval_ms=100, timeout_ms=0), clock=clock, sleep=clock.sleep
        )

        assert not outcome
        assert len(calls) == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_async_predicate(self, clock):
        """Test coroutine predicates are awaited."""

        async def ready():
            return True

        outcome = await poll_until(
            PollSpec(ready, interval_ms=100, timeout_ms=1000), clock=clock, sleep=clock.sleep
        )
        assert outcome.success

    @pytest.mark.asyncio
    async def test_predicate_error_counts_as_false(self, clock):
        """Test a raising predicate does not abort polling."""
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("element detached")
            return True

        outcome = await poll_until(
            PollSpec(flaky, interval_ms=100, timeout_ms=1000), clock=clock, sleep=clock.sleep
        )

        assert outcome.success
        assert outcome.attempts == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Test an outer timeout cancels polling at its sleep."""
        spec = PollSpec(lambda: False, interval_ms=50, timeout_ms=60_000)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(poll_until(spec), timeout=0.2)

    @pytest.mark.asyncio
    async def test_deadline_checked_after_sleep(self, clock):
        """Test no evaluation happens once the sleep crossed the deadline."""
        calls = []

        def predicate():
            calls.append(clock.now)
            return False

        await poll_until(
            PollSpec(predicate, interval_ms=600, timeout_ms=1000), clock=clock, sleep=clock.sleep
        )

        # t=0 and t=0.6; the sleep to t=1.2 passes the deadline
        assert len(calls) == 2


class TestWaitUntil:
    """Test the raising wrapper."""

    @pytest.mark.asyncio
    async def test_raises_poll_timeout(self, clock):
        """Test timeouts raise PollTimeoutError naming the step."""
        with pytest.raises(PollTimeoutError) as exc_info:
            await wait_until(
                lambda: False,
                timeout_ms=1000,
                interval_ms=500,
                step="mint success",
                clock=clock,
                sleep=clock.sleep,
            )

        assert exc_info.value.step == "mint success"
        assert exc_info.value.timeout_ms == 1000
        assert "mint success" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_returns_outcome_on_success(self, clock):
        """Test success returns the outcome."""
        outcome = await wait_until(
            lambda: True, timeout_ms=1000, interval_ms=500, step="x", clock=clock, sleep=clock.sleep
        )
        assert isinstance(outcome, PollOutcome)
        assert outcome.success

    def test_raise_for_timeout_on_success_returns_self(self):
        """Test raise_for_timeout is a no-op on success."""
        outcome = PollOutcome(True, 10, 1, 100)
        assert outcome.raise_for_timeout() is outcome


class TestVisibilityPredicates:
    """Test visible()/hidden() predicate factories."""

    @pytest.mark.asyncio
    async def test_visible_and_hidden(self, driver):
        """Test predicates follow element visibility."""
        driver.add("toast", visible=False)
        candidate = LocatorCandidate.of("toast", "toast")

        assert await visible(driver, candidate, 100)() is False
        assert await hidden(driver, candidate)() is True

        driver.elements["toast"].visible = True
        assert await visible(driver, candidate, 100)() is True
        assert await hidden(driver, candidate)() is False

    @pytest.mark.asyncio
    async def test_hidden_treats_check_errors_as_hidden(self, driver):
        """Test a broken locator reads as hidden."""
        driver.raising.add("bad")
        assert await hidden(driver, LocatorCandidate.of("x", "bad"))() is True
