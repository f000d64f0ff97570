"""Wallet extension boundary: popup lookup, button confirmation, approve/sign."""

from typing import Iterable, Optional, Protocol

from loguru import logger

from dopamint_e2e.constants import Delays, Timeouts
from dopamint_e2e.core.exceptions import WalletError
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.resolution import resolve
from dopamint_e2e.selector.catalog import SelectorCatalog

CONNECT_TEXTS = ("Next", "Connect", "Confirm", "Approve")
SIGN_TEXTS = ("Sign", "Confirm", "Approve")


class WalletAutomation(Protocol):
    """Higher-level wallet operations, used when explicit controls are not found."""

    async def approve(self) -> None: ...

    async def sign(self) -> None: ...


class WalletPageSource(Protocol):
    """Owner of the browser context: finds and closes wallet extension pages."""

    async def find_wallet_page(self) -> Optional[PageDriver]: ...

    async def close_wallet_pages(self) -> int: ...


def wallet_button_candidate(
    catalog: SelectorCatalog, kind: str, texts: Iterable[str]
) -> LocatorCandidate:
    """
    Candidate for the wallet's confirm (``kind="confirm"``) or sign button.

    Test-id selectors come first, then one visible-text strategy per label.
    """
    base = catalog.candidate(f"wallet.{kind}_buttons", target=f"wallet {kind} button")
    return base.extend(*[f'button:has-text("{text}")' for text in texts])


async def _is_enabled(driver: PageDriver, handle) -> bool:
    try:
        return await driver.is_enabled(handle)
    except Exception as e:
        logger.debug(f"Could not read enabled state: {e}")
        return True


async def confirm_popup(
    driver: PageDriver, candidate: LocatorCandidate, check_timeout_ms: int
) -> bool:
    """
    Click the first visible, enabled button of ``candidate`` in a wallet popup.

    Wallet popups keep the confirm button disabled until the content is
    scrolled, so a disabled match gets one scroll before giving up.

    Returns:
        True if a button was clicked
    """
    result = await resolve(driver, candidate, check_timeout_ms)
    if not result:
        return False

    if not await _is_enabled(driver, result.handle):
        await driver.scroll(1000)
        await driver.wait(Delays.AFTER_CLICK)
        if not await _is_enabled(driver, result.handle):
            logger.debug(f"{candidate.target} stays disabled after scrolling")
            return False

    await driver.click(result.handle)
    logger.info(f"🦊 Clicked {candidate.target} ({result.strategy.describe()})")
    return True


class ExtensionWallet:
    """WalletAutomation that drives the extension's own popup page.

    Broader than the workflow's first attempt: it brings the page to the end
    of its content and also accepts the generic primary button.
    """

    def __init__(
        self,
        pages: WalletPageSource,
        catalog: SelectorCatalog,
        check_timeout_ms: int = Timeouts.WALLET_BUTTON,
    ):
        self.pages = pages
        self.catalog = catalog
        self.check_timeout_ms = check_timeout_ms

    async def _confirm(self, kind: str, texts: Iterable[str]) -> None:
        popup = await self.pages.find_wallet_page()
        if popup is None:
            raise WalletError(f"No wallet popup open to {kind}")

        await popup.press_key("End")
        await popup.scroll(1000)
        await popup.wait(Delays.AFTER_CLICK)

        scroll_result = await resolve(
            popup, self.catalog.candidate("wallet.scroll_button"), Timeouts.CHECK_INSTANT
        )
        if scroll_result:
            await popup.click(scroll_result.handle)

        candidate = wallet_button_candidate(self.catalog, kind, texts).extend(
            *self.catalog.entries("wallet.generic_primary")
        )
        if not await confirm_popup(popup, candidate, self.check_timeout_ms):
            raise WalletError(
                f"No {kind} button found in wallet popup",
                details={"url": popup.current_url(), "tried": candidate.describe()},
            )

    async def approve(self) -> None:
        """Approve a pending connection request."""
        await self._confirm("confirm", CONNECT_TEXTS)

    async def sign(self) -> None:
        """Sign a pending signature request."""
        await self._confirm("sign", SIGN_TEXTS)
