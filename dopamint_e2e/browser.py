"""Browser lifecycle per worker: isolated persistent profile and wallet extension."""

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger
from playwright.async_api import BrowserContext, Page, Playwright, async_playwright

from dopamint_e2e.constants import Timeouts
from dopamint_e2e.core.settings import E2ESettings
from dopamint_e2e.resilience.driver import PlaywrightDriver

EXTENSION_SCHEME = "chrome-extension://"
WALLET_POPUP_MARKERS = ("notification.html", "popup.html", "confirm")
WALLET_HOME_MARKER = "home.html"
# Written into a profile once its wallet is imported and configured
WALLET_READY_FILE = ".wallet-ready"


def pick_wallet_url(urls: List[str]) -> Optional[int]:
    """
    Index of the wallet popup among open page URLs.

    Notification/popup/confirm pages win; otherwise any extension page that
    is not the wallet's home tab.
    """
    for index, url in enumerate(urls):
        if url.startswith(EXTENSION_SCHEME) and any(m in url for m in WALLET_POPUP_MARKERS):
            return index
    for index, url in enumerate(urls):
        if url.startswith(EXTENSION_SCHEME) and WALLET_HOME_MARKER not in url:
            return index
    return None


class BrowserSession:
    """Owns one worker's browser; engines only ever see drivers over its pages."""

    def __init__(self, settings: E2ESettings, worker_index: int = 0):
        """
        Initialize session.

        Args:
            settings: Run settings
            worker_index: Worker number, used for the isolated profile directory
        """
        self.settings = settings
        self.worker_index = worker_index
        self.playwright: Optional[Playwright] = None
        self.context: Optional[BrowserContext] = None
        self.profile_dir = Path(settings.user_data_root) / f"worker-{worker_index}"
        self._main_page: Optional[Page] = None

    async def start(self) -> None:
        """Launch a persistent Chromium context, loading the wallet extension if set."""
        if self.context is not None:
            logger.warning("Browser session already started")
            return

        try:
            self.playwright = await async_playwright().start()
            if self.settings.fresh_profile and self.profile_dir.exists():
                logger.info(f"🧹 Wiping profile {self.profile_dir}")
                shutil.rmtree(self.profile_dir, ignore_errors=True)
            self.profile_dir.mkdir(parents=True, exist_ok=True)

            args = ["--disable-blink-features=AutomationControlled"]
            extension = self.settings.wallet_extension_path
            if extension:
                args += [
                    f"--disable-extensions-except={extension}",
                    f"--load-extension={extension}",
                ]

            launch_options: Dict[str, Any] = {
                "headless": self.settings.headless,
                "args": args,
                "viewport": {"width": 1440, "height": 900},
            }
            self.context = await self.playwright.chromium.launch_persistent_context(
                str(self.profile_dir), **launch_options
            )
            self.context.set_default_timeout(Timeouts.PAGE_LOAD)

            state = self.settings.storage_state_path
            if state and Path(state).exists():
                await self._restore_cookies(Path(state))

            logger.info(f"🌐 Browser started for worker {self.worker_index} ({self.profile_dir})")
        except Exception:
            await self.close()
            raise

    @property
    def wallet_ready_file(self) -> Path:
        return self.profile_dir / WALLET_READY_FILE

    def wallet_setup_needed(self) -> bool:
        """A profile needs wallet setup when an extension and seed are configured but never imported."""
        return (
            self.settings.wallet_extension_path is not None
            and self.settings.has_wallet_seed()
            and not self.wallet_ready_file.exists()
        )

    def mark_wallet_ready(self) -> None:
        self.wallet_ready_file.write_text(datetime.now(timezone.utc).isoformat(), encoding="utf-8")
        logger.info(f"🦊 Wallet ready in {self.profile_dir}")

    async def _restore_cookies(self, state_path: Path) -> None:
        state = json.loads(state_path.read_text(encoding="utf-8"))
        cookies = state.get("cookies", [])
        if cookies and self.context is not None:
            await self.context.add_cookies(cookies)
            logger.info(f"Restored {len(cookies)} session cookie(s) from {state_path}")

    async def save_storage_state(self, path: Optional[Path] = None) -> Path:
        """Persist cookies/local storage so later runs can skip the login gate."""
        if self.context is None:
            raise RuntimeError("Browser session is not started")
        target = Path(path or self.settings.storage_state_path or "session/storage_state.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        await self.context.storage_state(path=str(target))
        logger.info(f"💾 Session state saved to {target}")
        return target

    async def close(self) -> None:
        """Clean up browser resources."""
        if self.context:
            try:
                await self.context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")
            self.context = None
            self._main_page = None

        if self.playwright:
            await self.playwright.stop()
            self.playwright = None

        logger.info(f"Browser resources cleaned up (worker {self.worker_index})")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _require_context(self) -> BrowserContext:
        if self.context is None:
            raise RuntimeError("Browser session is not started. Call start() first.")
        return self.context

    async def main_page(self) -> Page:
        """The dapp tab; reuses the persistent context's first tab to avoid a blank one."""
        context = self._require_context()
        if self._main_page is None or self._main_page.is_closed():
            pages = [p for p in context.pages if not p.url.startswith(EXTENSION_SCHEME)]
            self._main_page = pages[0] if pages else await context.new_page()
            await self._main_page.bring_to_front()
        return self._main_page

    async def driver(self) -> PlaywrightDriver:
        """Driver over the main dapp tab."""
        return PlaywrightDriver(await self.main_page())

    async def find_wallet_page(self) -> Optional[PlaywrightDriver]:
        """Driver over the open wallet popup, if any."""
        pages = self._require_context().pages
        index = pick_wallet_url([p.url for p in pages])
        if index is None:
            return None
        popup = pages[index]
        try:
            await popup.wait_for_load_state()
            await popup.bring_to_front()
        except Exception as e:
            logger.debug(f"Wallet popup not ready: {e}")
        return PlaywrightDriver(popup)

    async def wallet_home(self, timeout_ms: int = Timeouts.WALLET_POPUP) -> PlaywrightDriver:
        """
        Driver over the wallet extension's home tab, opening it if needed.

        The extension ID is read from its background service worker.
        """
        context = self._require_context()
        for page in context.pages:
            if page.url.startswith(EXTENSION_SCHEME) and WALLET_HOME_MARKER in page.url:
                await page.bring_to_front()
                return PlaywrightDriver(page)

        workers = context.service_workers or [
            await context.wait_for_event("serviceworker", timeout=timeout_ms)
        ]
        extension_id = workers[0].url[len(EXTENSION_SCHEME) :].split("/")[0]
        page = await context.new_page()
        await page.goto(f"{EXTENSION_SCHEME}{extension_id}/{WALLET_HOME_MARKER}")
        logger.info(f"🦊 Opened wallet home for extension {extension_id}")
        return PlaywrightDriver(page)

    async def close_wallet_pages(self) -> int:
        """Close stray wallet popups (never the wallet home tab); return how many."""
        closed = 0
        for page in list(self._require_context().pages):
            if page is self._main_page:
                continue
            url = page.url
            if not url.startswith(EXTENSION_SCHEME) or WALLET_HOME_MARKER in url:
                continue
            try:
                await page.close(run_before_unload=True)
                closed += 1
            except Exception as e:
                logger.debug(f"Could not close wallet page {url}: {e}")
        return closed

    async def open_in_new_page(
        self, action: Callable[[], Awaitable[None]], timeout_ms: int = Timeouts.NAVIGATION
    ) -> PlaywrightDriver:
        """
        Run ``action`` and return a driver over the tab it opens.

        Used for links such as "Go to collection" that open a new tab.
        """
        context = self._require_context()
        async with context.expect_page(timeout=timeout_ms) as page_info:
            await action()
        page = await page_info.value
        await page.wait_for_load_state("domcontentloaded")
        await page.bring_to_front()
        logger.info(f"📄 New tab opened: {page.url}")
        return PlaywrightDriver(page)
