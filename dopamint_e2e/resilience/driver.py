"""Page driver capability used by the engines, and its Playwright adapter."""

import asyncio
from typing import Any, List, Optional, Protocol, runtime_checkable

from loguru import logger
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from dopamint_e2e.constants import Timeouts
from dopamint_e2e.resilience.locators import LocatorStrategy, StrategyKind


@runtime_checkable
class PageDriver(Protocol):
    """Minimal page capability the engines and workflows are written against.

    ``locate`` performs no I/O and returns an opaque handle to the first
    match in document order. Handles are only valid until the page navigates.
    """

    def locate(self, strategy: LocatorStrategy) -> Any: ...

    async def is_visible(self, handle: Any, timeout_ms: int) -> bool: ...

    async def is_enabled(self, handle: Any) -> bool: ...

    async def click(self, handle: Any, force: bool = False) -> None: ...

    async def hover(self, handle: Any) -> None: ...

    async def fill(self, handle: Any, value: str) -> None: ...

    async def set_files(self, handle: Any, path: str) -> None: ...

    async def read_text(self, handle: Any) -> str: ...

    async def read_all(
        self, strategy: LocatorStrategy, attribute: Optional[str] = None
    ) -> List[str]: ...

    async def page_text(self) -> str: ...

    def current_url(self) -> str: ...

    async def goto(self, url: str) -> None: ...

    async def reload(self) -> None: ...

    async def press_key(self, key: str) -> None: ...

    async def click_at(self, x: int, y: int) -> None: ...

    async def scroll(self, delta_y: int) -> None: ...

    async def wait(self, ms: int) -> None: ...

    async def screenshot(self, path: str) -> None: ...


class PlaywrightDriver:
    """PageDriver backed by a Playwright ``Page``."""

    def __init__(self, page: Page, action_timeout_ms: int = Timeouts.PAGE_LOAD):
        """
        Initialize driver.

        Args:
            page: Playwright page object
            action_timeout_ms: Timeout for clicks, fills and navigation
        """
        self.page = page
        self.action_timeout_ms = action_timeout_ms

    def _base(self, strategy: LocatorStrategy) -> Locator:
        """Build the (possibly multi-match) Playwright locator for a strategy."""
        kind = strategy.kind
        if kind is StrategyKind.ROLE:
            if strategy.name:
                return self.page.get_by_role(
                    strategy.value, name=strategy.name, exact=strategy.exact  # type: ignore[arg-type]
                )
            return self.page.get_by_role(strategy.value)  # type: ignore[arg-type]
        if kind is StrategyKind.TEXT:
            return self.page.get_by_text(strategy.value, exact=strategy.exact)
        if kind is StrategyKind.LABEL:
            return self.page.get_by_label(strategy.value, exact=strategy.exact)
        if kind is StrategyKind.PLACEHOLDER:
            return self.page.get_by_placeholder(strategy.value, exact=strategy.exact)
        if kind is StrategyKind.TEST_ID:
            return self.page.get_by_test_id(strategy.value)
        return self.page.locator(strategy.value)

    def locate(self, strategy: LocatorStrategy) -> Locator:
        return self._base(strategy).first

    async def is_visible(self, handle: Locator, timeout_ms: int) -> bool:
        """
        Check visibility without touching the page.

        Playwright reads ``timeout=0`` as "wait forever", so a non-positive
        budget becomes an instant check.
        """
        if timeout_ms <= 0:
            return await handle.is_visible()
        try:
            await handle.wait_for(state="visible", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def is_enabled(self, handle: Locator) -> bool:
        return await handle.is_enabled()

    async def click(self, handle: Locator, force: bool = False) -> None:
        await handle.click(force=force, timeout=self.action_timeout_ms)

    async def hover(self, handle: Locator) -> None:
        await handle.hover(timeout=self.action_timeout_ms)

    async def fill(self, handle: Locator, value: str) -> None:
        await handle.fill(value, timeout=self.action_timeout_ms)

    async def set_files(self, handle: Locator, path: str) -> None:
        await handle.set_input_files(path, timeout=self.action_timeout_ms)

    async def read_text(self, handle: Locator) -> str:
        return (await handle.text_content(timeout=self.action_timeout_ms)) or ""

    async def read_all(self, strategy: LocatorStrategy, attribute: Optional[str] = None) -> List[str]:
        """Read text (or one attribute) of every element the strategy matches."""
        base = self._base(strategy)
        if attribute is None:
            return await base.all_text_contents()
        values = []
        for element in await base.all():
            value = await element.get_attribute(attribute)
            if value is not None:
                values.append(value)
        return values

    async def page_text(self) -> str:
        return await self.page.locator("body").inner_text(timeout=self.action_timeout_ms)

    def current_url(self) -> str:
        return self.page.url

    async def goto(self, url: str) -> None:
        logger.debug(f"Navigating to {url}")
        await self.page.goto(url, timeout=self.action_timeout_ms, wait_until="domcontentloaded")

    async def reload(self) -> None:
        await self.page.reload(timeout=self.action_timeout_ms, wait_until="domcontentloaded")

    async def press_key(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def click_at(self, x: int, y: int) -> None:
        await self.page.mouse.click(x, y)

    async def scroll(self, delta_y: int) -> None:
        await self.page.mouse.wheel(0, delta_y)

    async def wait(self, ms: int) -> None:
        await asyncio.sleep(ms / 1000)

    async def screenshot(self, path: str) -> None:
        await self.page.screenshot(path=path, full_page=True)
