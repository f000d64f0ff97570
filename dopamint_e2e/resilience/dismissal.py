"""Popup/overlay dismissal built on resolution and re-checked every round."""

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Protocol, Tuple

from loguru import logger

from dopamint_e2e.constants import DismissalConfig, Timeouts
from dopamint_e2e.core.exceptions import DismissalIncompleteError
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.resolution import resolve


class DismissalAction(Protocol):
    """One way of closing an overlay. ``perform`` reports whether it acted.

    Blind actions (key presses, coordinate clicks) cannot tell whether they
    hit anything, so they only count as successful once the overlay is gone.
    """

    blind: bool

    async def perform(self, driver: PageDriver, check_timeout_ms: int) -> bool: ...

    def describe(self) -> str: ...


@dataclass(frozen=True)
class ClickCandidate:
    """Click the first visible close control."""

    candidate: LocatorCandidate
    force: bool = True
    blind: ClassVar[bool] = False

    async def perform(self, driver: PageDriver, check_timeout_ms: int) -> bool:
        result = await resolve(driver, self.candidate, check_timeout_ms)
        if not result:
            return False
        await driver.click(result.handle, force=self.force)
        return True

    def describe(self) -> str:
        return f"click {self.candidate.target}"


@dataclass(frozen=True)
class PressKey:
    """Press a key (Escape by default)."""

    key: str = "Escape"
    blind: ClassVar[bool] = True

    async def perform(self, driver: PageDriver, check_timeout_ms: int) -> bool:
        await driver.press_key(self.key)
        return True

    def describe(self) -> str:
        return f"press {self.key}"


@dataclass(frozen=True)
class ClickAt:
    """Click a fixed page coordinate, normally somewhere outside the dialog."""

    x: int = DismissalConfig.OUTSIDE_CLICK[0]
    y: int = DismissalConfig.OUTSIDE_CLICK[1]
    blind: ClassVar[bool] = True

    async def perform(self, driver: PageDriver, check_timeout_ms: int) -> bool:
        await driver.click_at(self.x, self.y)
        return True

    def describe(self) -> str:
        return f"click at ({self.x}, {self.y})"


@dataclass(frozen=True)
class DismissalPlan:
    """Overlay detector plus the ordered actions tried each round."""

    overlay: LocatorCandidate
    actions: Tuple[DismissalAction, ...] = field(default_factory=tuple)
    fallback: Optional[DismissalAction] = field(default_factory=ClickAt)
    settle_ms: int = DismissalConfig.SETTLE_MS
    check_timeout_ms: int = Timeouts.CHECK_INSTANT
    overlay_check_ms: int = Timeouts.CHECK_INSTANT

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))


async def _overlay_visible(driver: PageDriver, plan: DismissalPlan) -> bool:
    return (await resolve(driver, plan.overlay, plan.overlay_check_ms)).found


async def _attempt(action: DismissalAction, driver: PageDriver, plan: DismissalPlan) -> bool:
    try:
        return await action.perform(driver, plan.check_timeout_ms)
    except Exception as e:
        logger.debug(f"Dismissal action '{action.describe()}' failed: {e}")
        return False


async def dismiss(
    driver: PageDriver,
    plan: DismissalPlan,
    max_rounds: int = DismissalConfig.MAX_ROUNDS,
    strict: bool = False,
) -> bool:
    """
    Close blocking overlays until none remains or rounds run out.

    Every round first checks for an overlay and returns immediately when
    there is none, so calling this on a clean page performs no action.
    Otherwise actions run in plan order until one reports success; if none
    does, the fallback runs. The page then settles before the next round.
    Blind actions only report success when the overlay is gone after they
    settle, so a useless Escape does not shadow the actions behind it.

    Args:
        driver: Page driver
        plan: Overlay detector and actions
        max_rounds: Upper bound on rounds
        strict: Raise instead of returning False when the overlay persists

    Returns:
        True when no overlay remains, False otherwise

    Raises:
        DismissalIncompleteError: If ``strict`` and the overlay persists
        ValueError: If ``max_rounds`` < 1
    """
    if max_rounds < 1:
        raise ValueError("max_rounds must be >= 1")

    for round_no in range(1, max_rounds + 1):
        if not await _overlay_visible(driver, plan):
            if round_no > 1:
                logger.info(f"✅ {plan.overlay.target} dismissed after {round_no - 1} round(s)")
            return True

        acted = False
        for action in plan.actions:
            if not await _attempt(action, driver, plan):
                continue
            if action.blind:
                await driver.wait(plan.settle_ms)
                if await _overlay_visible(driver, plan):
                    logger.debug(f"Round {round_no}: {action.describe()} had no effect")
                    continue
            logger.debug(f"Round {round_no}: {action.describe()}")
            acted = True
            break

        if not acted and plan.fallback is not None:
            logger.debug(f"Round {round_no}: fallback {plan.fallback.describe()}")
            await _attempt(plan.fallback, driver, plan)

        await driver.wait(plan.settle_ms)

    if not await _overlay_visible(driver, plan):
        logger.info(f"✅ {plan.overlay.target} dismissed after {max_rounds} round(s)")
        return True

    if strict:
        raise DismissalIncompleteError(max_rounds)
    logger.warning(f"⚠️ {plan.overlay.target} still visible after {max_rounds} round(s), continuing")
    return False
