"""Selector resolution: first visible strategy of an ordered candidate list."""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from loguru import logger

from dopamint_e2e.core.exceptions import ResolutionNotFoundError
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate, LocatorStrategy


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of ``resolve``.

    ``handle`` is None when nothing matched. ``strategy_index`` is kept for
    diagnostics only.
    """

    target: str
    handle: Any = None
    strategy_index: Optional[int] = None
    strategy: Optional[LocatorStrategy] = None
    tried: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.strategy_index is not None

    def __bool__(self) -> bool:
        return self.found

    def require(self) -> Any:
        """
        Return the handle or fail.

        Raises:
            ResolutionNotFoundError: If no strategy matched
        """
        if not self.found:
            raise ResolutionNotFoundError(self.target, list(self.tried))
        return self.handle


async def check_strategy(driver: PageDriver, strategy: LocatorStrategy, timeout_ms: int) -> Any:
    """
    Check one strategy; return its handle when visible, else None.

    Any driver error (invalid selector, detached element, closed page)
    reads as "not visible".
    """
    try:
        handle = driver.locate(strategy)
        if await driver.is_visible(handle, timeout_ms):
            return handle
    except Exception as e:
        logger.debug(f"Check failed for {strategy.describe()}: {e}")
    return None


async def resolve(
    driver: PageDriver, candidate: LocatorCandidate, per_attempt_timeout_ms: int
) -> ResolutionResult:
    """
    Resolve a logical target to its first visible strategy.

    Strategies are checked strictly in order and each at most once, so the
    worst case costs ``len(candidate) * per_attempt_timeout_ms``. The engine
    never relaxes a strategy on its own; composing a fallback is up to the
    caller.

    Args:
        driver: Page driver
        candidate: Ordered strategies for the target
        per_attempt_timeout_ms: Visibility budget per strategy

    Returns:
        Found result tagged with the matching index, or a not-found result
    """
    tried = []
    for index, strategy in enumerate(candidate.strategies):
        tried.append(strategy.describe())
        handle = await check_strategy(driver, strategy, per_attempt_timeout_ms)
        if handle is not None:
            logger.debug(f"✅ {candidate.target}: matched strategy #{index} ({strategy.describe()})")
            return ResolutionResult(
                target=candidate.target,
                handle=handle,
                strategy_index=index,
                strategy=strategy,
                tried=tuple(tried),
            )

    logger.debug(f"🔍 {candidate.target}: no visible match among {len(tried)} strategies")
    return ResolutionResult(target=candidate.target, tried=tuple(tried))
