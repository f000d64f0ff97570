"""Search workflow: find a collection from the header search and open it."""

import re
from typing import Dict, Optional

from loguru import logger

from dopamint_e2e.constants import Delays, Intervals, Timeouts
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.polling import wait_until
from dopamint_e2e.resilience.resolution import ResolutionResult, resolve
from dopamint_e2e.workflows.base import BasePage
from dopamint_e2e.workflows.mint import collection_address

CONTRACT_ADDRESS = re.compile(r"0x[a-fA-F0-9]{40}")
RESULT_SCROLL_PX = 500


def target_address(collection_url: str) -> str:
    """
    Lower-cased collection address of a collection URL.

    >>> target_address("https://dev.dopamint.ai/collections/0xAB" + "0" * 38)
    '0xab00000000000000000000000000000000000000'
    """
    match = CONTRACT_ADDRESS.search(collection_url)
    return (match.group(0) if match else collection_address(collection_url)).lower()


def _quoted(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class SearchWorkflow(BasePage):
    """Open a collection through the marketplace search dropdown."""

    def result_candidate(self, name: str, address: str = "") -> LocatorCandidate:
        """
        Strategies for the search result to click.

        Inside each result container a link must carry the address (when
        known) and the name. Outside the dropdown only the address is
        trusted, since names are not unique.
        """
        link = f'a[href*="{_quoted(address)}" i]' if address else 'a[href*="/collections/"]'
        entries = [
            f'{container} {link}:has-text("{_quoted(name)}")'
            for container in self.catalog.entries("search.result_containers")
        ]
        if address:
            entries.append(link)
        else:
            entries.append({"role": "option", "name": name})
        return LocatorCandidate.of(f"search result '{name}'", *entries)

    async def open_search(self) -> None:
        async with self.step("Click Search button"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            if not await self.click("search.search_button", required=False):
                logger.warning("⚠️ Search button not found, using the search input directly")

    async def search_and_open(
        self,
        search_text: str,
        collection_url: Optional[str] = None,
        expected_name: Optional[str] = None,
        timeout_ms: int = Timeouts.SEARCH_RESULTS,
    ) -> str:
        """
        Type ``search_text``, click the matching result and wait for its page.

        Args:
            search_text: Text typed into the search input
            collection_url: Collection the result must link to, when known
            expected_name: Name the result must show (defaults to ``search_text``)
            timeout_ms: How long to wait for a matching result

        Returns:
            URL of the opened collection page

        Raises:
            WorkflowStepError: If no result matched or the wrong page opened
        """
        address = target_address(collection_url) if collection_url else ""
        name = expected_name or search_text
        async with self.step(f"Search and open collection '{search_text}'"):
            await self.fill("search.search_input", search_text)
            logger.info(f"🔍 Searching for '{search_text}'")
            await self.driver.wait(Delays.SEARCH_RESULTS)

            candidate = self.result_candidate(name, address)
            found: Dict[str, ResolutionResult] = {}

            async def result_visible() -> bool:
                result = await resolve(self.driver, candidate, Timeouts.CHECK_INSTANT)
                if result:
                    found["result"] = result
                    return True
                # more results load as the dropdown scrolls
                await self.driver.scroll(RESULT_SCROLL_PX)
                return False

            await wait_until(
                result_visible,
                timeout_ms=timeout_ms,
                interval_ms=Intervals.SEARCH_RESULTS,
                step=candidate.target,
                clock=self._clock,
                sleep=self._sleep,
            )
            result = found["result"]
            logger.info(f"Search result matched via {result.strategy.describe()}")
            await self.driver.click(result.handle, force=True)

            expected = address or "/collections/"
            await wait_until(
                lambda: expected in self.driver.current_url().lower(),
                timeout_ms=Timeouts.NAVIGATION,
                interval_ms=Intervals.DEFAULT,
                step=f"collection page {expected}",
                clock=self._clock,
                sleep=self._sleep,
            )
            url = self.driver.current_url()
            logger.info(f"📄 Opened collection: {url}")
            return url
