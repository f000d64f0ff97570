"""Shared page-object plumbing: steps, diagnostics and engine helpers."""

import asyncio
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from loguru import logger

from dopamint_e2e.constants import Delays, DismissalConfig, Intervals
from dopamint_e2e.core.exceptions import ResolutionNotFoundError, WorkflowStepError
from dopamint_e2e.core.settings import E2ESettings
from dopamint_e2e.resilience.dismissal import (
    ClickAt,
    ClickCandidate,
    DismissalPlan,
    PressKey,
    dismiss,
)
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.polling import Clock, PollOutcome, Sleep, hidden, visible, wait_until
from dopamint_e2e.resilience.resolution import ResolutionResult, resolve
from dopamint_e2e.selector.catalog import SelectorCatalog
from dopamint_e2e.utils.error_capture import ErrorCapture

Target = Union[str, LocatorCandidate]


class BasePage:
    """Base for Dopamint workflows.

    Holds the page driver and explicit run configuration. Subclasses express
    each UI action as "resolve a target, then poll for its post-condition".
    """

    def __init__(
        self,
        driver: PageDriver,
        settings: E2ESettings,
        catalog: SelectorCatalog,
        error_capture: Optional[ErrorCapture] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize page object.

        Args:
            driver: Page driver for the tab this workflow acts on
            settings: Run settings
            catalog: Selector catalog
            error_capture: Failure diagnostics writer
            clock: Monotonic clock for step timing and polling
            sleep: Async sleep used by polling
        """
        self.driver = driver
        self.settings = settings
        self.catalog = catalog
        self.error_capture = error_capture or ErrorCapture(settings.output_dir / "errors")
        self.check_ms = settings.check_timeout_ms
        self._clock = clock
        self._sleep = sleep

    def candidate(self, target: Target) -> LocatorCandidate:
        if isinstance(target, LocatorCandidate):
            return target
        return self.catalog.candidate(target)

    @asynccontextmanager
    async def step(self, name: str) -> AsyncIterator[None]:
        """
        Run a named workflow step.

        On failure a screenshot and JSON record are captured and the error is
        re-raised as ``WorkflowStepError`` naming the step and elapsed time.
        Cancellation from the outer workflow timeout passes through untouched.
        """
        logger.info(f"▶️ {name}")
        start = self._clock()
        try:
            yield
        except WorkflowStepError:
            raise
        except Exception as e:
            elapsed_ms = (self._clock() - start) * 1000
            logger.error(f"❌ {name} failed after {elapsed_ms / 1000:.1f}s: {e}")
            record = await self.error_capture.capture(
                self.driver, e, {"step": name, "elapsed_ms": round(elapsed_ms)}
            )
            raise WorkflowStepError(name, elapsed_ms, record.get("screenshot"), cause=e) from e
        logger.info(f"✅ {name} ({self._clock() - start:.1f}s)")

    async def milestone(self, name: str) -> Optional[str]:
        """Screenshot a reached milestone; the path, or None if the page could not be captured."""
        path = await self.error_capture.screenshot(self.driver, name)
        if path:
            logger.info(f"📸 {name}: {path}")
        return path

    async def find(self, target: Target, timeout_ms: Optional[int] = None) -> ResolutionResult:
        """Resolve a target without acting on it."""
        return await resolve(
            self.driver, self.candidate(target), self.check_ms if timeout_ms is None else timeout_ms
        )

    async def click(
        self,
        target: Target,
        fallback: Optional[Target] = None,
        required: bool = True,
        force: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> bool:
        """
        Resolve and click a target.

        Args:
            target: Catalog path or candidate
            fallback: Secondary candidate tried when the first is not found
            required: Raise when nothing matched (otherwise return False)
            force: Skip Playwright's actionability checks
            timeout_ms: Per-strategy check budget

        Returns:
            True if something was clicked

        Raises:
            ResolutionNotFoundError: If ``required`` and nothing matched
        """
        result = await self.find(target, timeout_ms)
        if not result and fallback is not None:
            logger.info(f"↪️ {result.target} not found, trying fallback")
            result = await self.find(fallback, timeout_ms)
        if not result:
            if required:
                result.require()
            logger.debug(f"Skipping click on {result.target}: not visible")
            return False

        await self.driver.click(result.handle, force=force)
        await self.driver.wait(Delays.AFTER_CLICK)
        return True

    async def fill(self, target: Target, value: str, required: bool = True) -> bool:
        """Resolve and fill an input."""
        result = await self.find(target)
        if not result:
            if required:
                result.require()
            return False
        await self.driver.fill(result.handle, value)
        return True

    async def upload(self, target: Target, path: Union[str, Path]) -> None:
        """
        Set a file on the first file input any strategy reaches.

        File inputs are usually hidden, so strategies are tried by attempting
        the upload rather than checking visibility.

        Raises:
            FileNotFoundError: If the file does not exist
            ResolutionNotFoundError: If no strategy accepted the file
        """
        file_path = Path(path).resolve()
        if not file_path.is_file():
            raise FileNotFoundError(f"Upload file not found: {file_path}")

        candidate = self.candidate(target)
        for strategy in candidate:
            try:
                await self.driver.set_files(self.driver.locate(strategy), str(file_path))
            except Exception as e:
                logger.debug(f"Upload via {strategy.describe()} failed: {e}")
                continue
            logger.info(f"📎 Uploaded {file_path.name} via {strategy.describe()}")
            return
        raise ResolutionNotFoundError(candidate.target, candidate.describe())

    async def wait_visible(
        self,
        target: Target,
        timeout_ms: int,
        interval_ms: int = Intervals.DEFAULT,
        step: Optional[str] = None,
    ) -> PollOutcome:
        """Poll until the target is visible; raise PollTimeoutError otherwise."""
        candidate = self.candidate(target)
        return await wait_until(
            visible(self.driver, candidate, min(self.check_ms, interval_ms)),
            timeout_ms=timeout_ms,
            interval_ms=interval_ms,
            step=step or f"{candidate.target} visible",
            clock=self._clock,
            sleep=self._sleep,
        )

    async def wait_hidden(
        self,
        target: Target,
        timeout_ms: int,
        interval_ms: int = Intervals.DEFAULT,
        step: Optional[str] = None,
    ) -> PollOutcome:
        """Poll until no strategy of the target is visible."""
        candidate = self.candidate(target)
        return await wait_until(
            hidden(self.driver, candidate),
            timeout_ms=timeout_ms,
            interval_ms=interval_ms,
            step=step or f"{candidate.target} hidden",
            clock=self._clock,
            sleep=self._sleep,
        )

    def popup_plan(self, close_path: Optional[str] = None) -> DismissalPlan:
        """
        Standard dismissal plan for Dopamint dialogs.

        Specific close buttons first, then Escape; an outside click is the
        last resort.
        """
        actions = []
        if close_path:
            actions.append(ClickCandidate(self.catalog.candidate(close_path)))
        actions += [
            ClickCandidate(self.catalog.candidate("dialog.close_x", target="dialog close (x)")),
            ClickCandidate(self.catalog.candidate("dialog.close_generic", target="dialog close")),
            PressKey("Escape"),
        ]
        return DismissalPlan(
            overlay=self.catalog.candidate("dialog.overlay", target="blocking dialog"),
            actions=tuple(actions),
            fallback=ClickAt(*DismissalConfig.OUTSIDE_CLICK),
        )

    async def close_popups(
        self, close_path: Optional[str] = None, max_rounds: int = DismissalConfig.MAX_ROUNDS
    ) -> bool:
        """Dismiss blocking dialogs; a leftover overlay is logged, not fatal."""
        return await dismiss(self.driver, self.popup_plan(close_path), max_rounds=max_rounds)
