"""Mint workflow: baseline the gallery, mint, and confirm the new tokens."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from loguru import logger

from dopamint_e2e.constants import Delays, Intervals, Timeouts
from dopamint_e2e.resilience.baseline import (
    HASH_ID_TEXT,
    NFT_ID_HREF,
    extract_token_ids,
    highest_token_id,
    new_ids_above,
    new_ids_predicate,
)
from dopamint_e2e.resilience.locators import LocatorCandidate, LocatorStrategy
from dopamint_e2e.resilience.polling import PollSpec, poll_until
from dopamint_e2e.workflows.base import BasePage

COLLECTION_ADDRESS = re.compile(r"collections\/([^?\/]+)")
MINTED_COUNT = re.compile(r"Minted\s*(\d+)", re.IGNORECASE)
DEFAULT_MINTED_COUNT = 2
TOKEN_ID_ATTRIBUTES = ("data-nft-id", "data-token-id")


def collection_address(url: str) -> str:
    """Collection contract address from a collection URL ('' if absent)."""
    match = COLLECTION_ADDRESS.search(url)
    return match.group(1) if match else ""


def token_url(base_url: str, address: str, token_id: int) -> str:
    """Marketplace URL of one token in a collection."""
    return f"{base_url}collections/{address}?collection={address}&nft_id={token_id}"


def minted_count(text: str, default: int = DEFAULT_MINTED_COUNT) -> int:
    """
    Number of NFTs reported by a mint success message.

    >>> minted_count("Minted 3 NFT Successfully")
    3
    """
    match = MINTED_COUNT.search(text or "")
    return int(match.group(1)) if match else default


@dataclass
class MintVerification:
    """Result of the post-mint gallery check."""

    baseline: int
    expected: int
    new_ids: List[int] = field(default_factory=list)
    token_urls: List[str] = field(default_factory=list)

    @property
    def verified(self) -> bool:
        return len(self.new_ids) >= self.expected


class MintWorkflow(BasePage):
    """Mint NFTs into an opened collection page."""

    def current_address(self) -> str:
        return collection_address(self.driver.current_url())

    async def verify_collection_title(self, expected_title: str) -> bool:
        """
        Check the collection page shows ``expected_title``.

        Title elements are tried first, then the page body. A mismatch is
        logged and reported, not raised.
        """
        async with self.step(f"Verify collection title '{expected_title}'"):
            await self.driver.wait(Delays.AFTER_UPLOAD)
            expected = expected_title.lower()
            title = await self.find("mint.collection_title")
            if title:
                text = (await self.driver.read_text(title.handle) or "").strip()
                logger.info(f"Found title element: '{text}'")
                if text and (expected in text.lower() or text.lower() in expected):
                    logger.info("✅ Collection title verified")
                    return True

            if expected in (await self.driver.page_text()).lower():
                logger.info("✅ Page contains expected title")
                return True

            logger.warning(f"⚠️ Could not verify title '{expected_title}'")
            return False

    async def _scroll_to_gallery(self) -> None:
        gallery = await self.find("mint.community_gallery", Timeouts.CHECK_QUICK + 1000)
        if gallery:
            # hover scrolls the section into view
            await self.driver.hover(gallery.handle)
            await self.driver.wait(Delays.GALLERY_SCROLL)

    async def _href_ids(self) -> List[int]:
        hrefs: List[str] = []
        for strategy in self.catalog.candidate("mint.nft_links"):
            hrefs += await self.driver.read_all(strategy, attribute="href")
        return extract_token_ids(hrefs, NFT_ID_HREF)

    async def _text_ids(self) -> List[int]:
        return extract_token_ids([await self.driver.page_text()], HASH_ID_TEXT)

    async def _attribute_ids(self) -> List[int]:
        values: List[str] = []
        for attribute in TOKEN_ID_ATTRIBUTES:
            strategy = LocatorStrategy.parse(f"[{attribute}]")
            values += await self.driver.read_all(strategy, attribute=attribute)
        return extract_token_ids(values)

    async def _read_ids(self) -> List[int]:
        """IDs from the first source that yields any; a failing source is skipped."""
        for source in (self._href_ids, self._text_ids, self._attribute_ids):
            try:
                ids = await source()
            except Exception as e:
                logger.debug(f"Token ID source {source.__name__} failed: {e}")
                continue
            if ids:
                return ids
        return []

    async def capture_baseline(self) -> int:
        """
        Highest token ID currently in the community gallery.

        Sources are tried in order (nft_id hrefs, ``#N`` text, data
        attributes); the first that yields IDs wins. An empty gallery or an
        unreadable page gives 0, so every minted token counts as new.

        Returns:
            Baseline token ID
        """
        async with self.step("Capture gallery baseline"):
            await self.driver.wait(Delays.AFTER_UPLOAD)
            await self._scroll_to_gallery()

            ids = await self._read_ids()
            baseline = highest_token_id(ids)
            if ids:
                logger.info(f"📌 Baseline token ID #{baseline} ({len(ids)} IDs in gallery)")
            else:
                logger.warning("⚠️ No token IDs in gallery, baseline is 0")
            return baseline

    async def click_mint_this(self) -> None:
        async with self.step("Click Mint this"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                "mint.mint_this",
                fallback=LocatorCandidate.of("Mint this (text)", {"text": "Mint this"}),
            )
            await self.driver.wait(Delays.AFTER_UPLOAD)

    async def upload_mint_image(self, image_path: Union[str, Path], number: int = 1) -> None:
        async with self.step(f"Upload mint image {number}"):
            await self.upload("mint.upload_input", image_path)
            await self.driver.wait(Delays.AFTER_NAVIGATION)

    async def add_nft_slot(self) -> None:
        async with self.step("Click + Add"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                "mint.add_nft",
                fallback=LocatorCandidate.of("+ Add (role)", {"role": "button", "name": "+ Add"}),
            )
            await self.driver.wait(Delays.DROPDOWN_OPEN)

    async def mint_and_generate(self) -> None:
        async with self.step("Click Mint and Generate"):
            await self.driver.wait(Delays.AFTER_CLICK)
            await self.click(
                "mint.mint_button",
                fallback=LocatorCandidate.of(
                    "Mint (role)", {"role": "button", "name": "Mint", "exact": True}
                ),
            )
            await self.driver.wait(Delays.AFTER_UPLOAD)
            await self.click("mint.mint_generate")

    async def start_mint(self, image_paths: Sequence[Union[str, Path]]) -> None:
        """
        Open the mint form, upload one image per slot and submit.

        Args:
            image_paths: One image per NFT to mint; a slot is added before
                every image after the first
        """
        if not image_paths:
            raise ValueError("At least one image is required to mint")

        await self.click_mint_this()
        for number, path in enumerate(image_paths, start=1):
            if number > 1:
                await self.add_nft_slot()
            await self.upload_mint_image(path, number)
        await self.mint_and_generate()

    async def wait_for_mint_success(self, timeout_ms: int = Timeouts.MINT_SUCCESS) -> int:
        """
        Wait for the "Minted N NFT Successfully" message.

        Returns:
            N, or 2 when the message carries no count
        """
        async with self.step("Wait for mint success"):
            await self.wait_visible(
                "mint.minted_success",
                timeout_ms=timeout_ms,
                interval_ms=Intervals.MINT_SUCCESS,
                step="mint success",
            )
            result = await self.find("mint.minted_success", Timeouts.CHECK_QUICK)
            text = await self.driver.read_text(result.handle) if result else ""
            count = minted_count(text)
            logger.info(f"✅ {text.strip() or 'Mint succeeded'} ({count} NFT)")
            return count

    async def close_success_popup(self) -> bool:
        """Dismiss the mint success dialog."""
        await self.driver.wait(Delays.DROPDOWN_OPEN)
        return await self.close_popups(close_path="mint.success_close")

    async def wait_for_new_tokens(
        self,
        baseline: int,
        expected: int,
        timeout_ms: int = Timeouts.GALLERY_UPDATE,
        address: Optional[str] = None,
    ) -> MintVerification:
        """
        Poll the gallery until ``expected`` token IDs exceed ``baseline``.

        Args:
            baseline: Highest ID captured before minting
            expected: Number of minted NFTs
            timeout_ms: Budget for the gallery to refresh
            address: Collection address for token URLs (defaults to the page's)

        Returns:
            MintVerification; ``verified`` is False when too few IDs showed up
        """
        async with self.step(f"Verify {expected} minted NFT(s) in gallery"):
            await self.driver.wait(Delays.AFTER_NAVIGATION)
            await self._scroll_to_gallery()

            outcome = await poll_until(
                PollSpec(
                    new_ids_predicate(self._read_ids, baseline, expected),
                    interval_ms=Intervals.GALLERY_UPDATE,
                    timeout_ms=timeout_ms,
                    description=f"{expected} token(s) above #{baseline}",
                ),
                clock=self._clock,
                sleep=self._sleep,
            )

            new_ids = new_ids_above(baseline, await self._read_ids())
            address = address or self.current_address()
            result = MintVerification(
                baseline=baseline,
                expected=expected,
                new_ids=new_ids,
                token_urls=[
                    token_url(self.settings.base_url, address, i) for i in new_ids[:expected]
                ],
            )
            if outcome and result.verified:
                logger.info(f"✅ Found {len(new_ids)} new NFT(s) above #{baseline}: {new_ids}")
            else:
                logger.warning(
                    f"⚠️ Expected {expected} new NFT(s) above #{baseline}, found {len(new_ids)}"
                )
            for url in result.token_urls:
                logger.info(f"Minted NFT URL: {url}")
            return result
