"""Sell workflow: list the first owned NFT and wait for the sale toast."""

import re
from typing import Optional

from loguru import logger

from dopamint_e2e.constants import Delays, Intervals, Timeouts
from dopamint_e2e.resilience.baseline import HASH_ID_TEXT, NFT_ID_HREF
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.workflows.base import BasePage
from dopamint_e2e.workflows.mint import collection_address, token_url

DEFAULT_PRICE = "0.001"
TOAST_TOKEN_ID = re.compile(r"#(\d+)|ID[:\s]*(\d+)", re.IGNORECASE)


def toast_token_id(text: str) -> Optional[int]:
    """Token ID mentioned in a toast, as ``#12`` or ``ID: 12``."""
    match = TOAST_TOKEN_ID.search(text or "")
    if not match:
        return None
    return int(match.group(1) or match.group(2))


class SellWorkflow(BasePage):
    """List an owned NFT from the collection's My Collectible tab."""

    async def open_my_collectible(self) -> None:
        async with self.step("Open My Collectible tab"):
            await self.driver.wait(Delays.AFTER_UPLOAD)
            await self.click(
                "sell.my_collectible_tab",
                fallback=LocatorCandidate.of("My Collectible (text)", {"text": "My Collectible"}),
            )
            await self.driver.wait(Delays.AFTER_NAVIGATION)

    async def start_sell_on_first_nft(self) -> Optional[int]:
        """
        Hover the first owned NFT and click its Sell button.

        Returns:
            Token ID shown on the card, when it carries one
        """
        async with self.step("Hover first NFT and click Sell"):
            await self.driver.wait(Delays.AFTER_UPLOAD)
            card = await self.find("sell.nft_card")
            handle = card.require()

            card_text = await self.driver.read_text(handle) or ""
            match = HASH_ID_TEXT.search(card_text)
            token_id = int(match.group(1)) if match else None
            logger.info(f"First NFT card: #{token_id}" if match else "First NFT card has no ID")

            await self.driver.hover(handle)
            await self.driver.wait(Delays.AFTER_HOVER)
            await self.click("sell.sell_on_card", force=True)
            return token_id

    async def confirm_sell(self, price: str = DEFAULT_PRICE) -> None:
        """Fill the listing price and submit the Sell dialog."""
        async with self.step("Click Sell in popup"):
            await self.driver.wait(Delays.AFTER_UPLOAD)
            if await self.fill("sell.price_input", price, required=False):
                logger.info(f"Listing price set to {price}")
            await self.click(
                "sell.sell_in_popup",
                fallback=LocatorCandidate.of(
                    "Sell (role)", {"role": "button", "name": "Sell", "exact": True}
                ),
            )

    async def wait_for_sold(
        self, token_id: Optional[int] = None, timeout_ms: int = Timeouts.SOLD_TOAST
    ) -> str:
        """
        Wait for the "sold successfully" toast.

        Args:
            token_id: ID of the listed card, when ``start_sell_on_first_nft`` found one
            timeout_ms: How long to wait for the toast

        Returns:
            URL of the sold token ('' when no token ID could be determined)
        """
        async with self.step("Wait for sold successfully"):
            await self.wait_visible(
                "sell.sold_toast",
                timeout_ms=timeout_ms,
                interval_ms=Intervals.SOLD_TOAST,
                step="sold toast",
            )
            toast = await self.find("sell.sold_toast", Timeouts.CHECK_INSTANT)
            toast_text = await self.driver.read_text(toast.handle) if toast else ""
            logger.info(f"💰 Sold successfully: '{(toast_text or '').strip()}'")
            return await self.sold_token_url(toast_text or "", token_id)

    async def sold_token_url(self, toast_text: str = "", token_id: Optional[int] = None) -> str:
        """
        URL of the sold token.

        The ID comes from ``token_id``, then the page URL, then the first
        token link, then the toast text.
        """
        url = self.driver.current_url()
        address = collection_address(url)

        if token_id is None:
            match = NFT_ID_HREF.search(url)
            token_id = int(match.group(1)) if match else None
        if token_id is None:
            token_id = await self._first_link_id()
        if token_id is None:
            token_id = toast_token_id(toast_text)

        if token_id is None or not address:
            logger.warning("⚠️ Could not determine sold token URL")
            return ""
        sold_url = token_url(self.settings.base_url, address, token_id)
        logger.info(f"Sold NFT URL: {sold_url}")
        return sold_url

    async def _first_link_id(self) -> Optional[int]:
        for strategy in self.catalog.candidate("mint.nft_links"):
            for href in await self.driver.read_all(strategy, attribute="href"):
                match = NFT_ID_HREF.search(href or "")
                if match:
                    return int(match.group(1))
        return None
