"""Create workflow: template, model, image, generate and publish a collection."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, Tuple, Union

from loguru import logger

from dopamint_e2e.constants import Delays, Intervals, Timeouts
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.polling import PollSpec, poll_until, visible
from dopamint_e2e.resilience.resolution import resolve
from dopamint_e2e.workflows.base import BasePage

COLLECTION_PREFIX = "Automation test"
DEFAULT_DESCRIPTION = "Automation test"
DEFAULT_SYMBOL = "AUTO"
UPLOAD_PREVIEW_TIMEOUT_MS = 15_000
UPLOAD_PREVIEW_INTERVAL_MS = 500


class AIModel(str, Enum):
    """Image models offered by the create form."""

    NANO_BANANA_PRO = "Nano Banana Pro"
    NANO_BANANA = "Nano Banana"
    CHATGPT = "ChatGPT"
    CHATGPT_IMAGE_15 = "ChatGPT image 1.5"

    @property
    def catalog_key(self) -> str:
        return self.name.lower()

    @property
    def slug(self) -> str:
        return self.value.lower().replace(" ", "-")


class PageOpener(Protocol):
    """Runs an action and hands back a driver over the tab it opened."""

    async def open_in_new_page(
        self, action: Callable[[], Awaitable[None]], timeout_ms: int = ...
    ) -> PageDriver: ...


def collection_name(now: Optional[datetime] = None) -> str:
    """
    Unique collection name from the local time.

    Format is ``Automation test <H><MM><DD><MM><YY>``, hours unpadded,
    e.g. ``Automation test 514121125`` for 5:14 on 12/11/2025.
    """
    now = now or datetime.now()
    return f"{COLLECTION_PREFIX} {now.hour}{now:%M%d%m%y}"


class CreateWorkflow(BasePage):
    """Create a collection from a template and publish it."""

    async def click_create(self) -> None:
        """Open the create page and close its tutorial dialog if shown."""
        async with self.step("Click Create"):
            await self.wait_visible("create.create_button", timeout_ms=Timeouts.PAGE_LOAD // 3)
            await self.click("create.create_button")
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            closed = await self.click(
                "create.tutorial_close", required=False, force=True, timeout_ms=Timeouts.CHECK_QUICK
            )
            if closed:
                logger.info("Closed tutorial popup")

    async def choose_template(self, template: str = "motorbike") -> None:
        """
        Swap the default template.

        Args:
            template: Catalog key under ``create.templates``
        """
        label = template.title()
        async with self.step(f"Choose template {label}"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                "create.change_template", fallback=LocatorCandidate.of("Change", {"text": "Change"})
            )
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                self.catalog.candidate(f"create.templates.{template}", target=f"{label} card"),
                fallback=LocatorCandidate.of(label, {"text": label}),
            )
            await self.driver.wait(Delays.DROPDOWN_OPEN)

    async def select_model(self, model: AIModel) -> None:
        """Pick the image model from the dropdown."""
        async with self.step(f"Select model {model.value}"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                "create.model_select",
                fallback=LocatorCandidate.of("model dropdown", {"text": "Select model"}),
            )
            await self.driver.wait(Delays.AFTER_CLICK)
            await self.click(
                self.catalog.candidate(f"create.models.{model.catalog_key}", target=model.value),
                fallback=LocatorCandidate.of(model.value, {"role": "option", "name": model.value}),
            )
            await self.driver.wait(Delays.AFTER_CLICK)

    async def upload_image(self, image_path: Union[str, Path]) -> bool:
        """
        Upload the source image and wait for its preview.

        A missing preview after the first upload triggers one re-upload.

        Returns:
            True if a preview appeared
        """
        async with self.step("Upload image"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.upload("create.upload_input", image_path)

            preview = visible(self.driver, self.catalog.candidate("create.upload_preview"), 100)
            outcome = await poll_until(
                PollSpec(
                    preview, UPLOAD_PREVIEW_INTERVAL_MS, UPLOAD_PREVIEW_TIMEOUT_MS, "upload preview"
                ),
                clock=self._clock,
                sleep=self._sleep,
            )
            if not outcome:
                logger.warning("⚠️ Image preview not displayed after 15s, retrying upload...")
                await self.upload("create.upload_input", image_path)
                await self.driver.wait(Delays.AFTER_NAVIGATION)
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            return outcome.success

    async def generate(self) -> None:
        """Click Generate and accept the confirmation dialog when it appears."""
        async with self.step("Click Generate"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(
                "create.generate_button",
                fallback=LocatorCandidate.of(
                    "Generate (role)", {"role": "button", "name": "Generate", "exact": True}
                ),
            )
            await self.driver.wait(Delays.DROPDOWN_OPEN)

            if await self.find("create.generate_confirm_popup", Timeouts.CHECK_QUICK):
                logger.info("Generate confirmation dialog shown")
                await self.click(
                    "create.generate_confirm_button", required=False, timeout_ms=Timeouts.CHECK_QUICK
                )

    async def wait_for_generation(self, timeout_ms: int = Timeouts.IMAGE_GENERATION) -> None:
        """
        Wait for image generation, signalled by the Publish & Monetize button.

        Raises:
            WorkflowStepError: If the button never appears
        """
        async with self.step("Wait for image generation"):
            await self.wait_visible(
                "create.publish_monetize",
                timeout_ms=timeout_ms,
                interval_ms=Intervals.IMAGE_GENERATION,
                step="image generation",
            )

    async def publish_collection(
        self,
        name: Optional[str] = None,
        description: str = DEFAULT_DESCRIPTION,
        symbol: str = DEFAULT_SYMBOL,
    ) -> str:
        """
        Publish the generated collection.

        Args:
            name: Collection name (defaults to a timestamped one)
            description: Collection description
            symbol: Token symbol

        Returns:
            The collection name used
        """
        name = name or collection_name()
        async with self.step("Publish collection"):
            await self.click(
                "create.publish_monetize",
                fallback=LocatorCandidate.of("Publish & Monetize", {"text": "Publish & Monetize"}),
            )
            await self.driver.wait(Delays.DROPDOWN_OPEN)

            logger.info(f"Collection: {name} / {description} / {symbol}")
            await self.fill("create.collection_name_input", name)
            await self.fill("create.description_input", description, required=False)
            if not await self.fill("create.symbol_input", symbol, required=False):
                logger.debug("No symbol input on publish form")

            await self.click(
                "create.publish_button",
                fallback=LocatorCandidate.of("Publish (role)", {"role": "button", "name": "Publish"}),
            )
            await self.driver.wait(Delays.AFTER_UPLOAD)
            await self.click(
                "create.confirm_publish",
                fallback=LocatorCandidate.of("Confirm (role)", {"role": "button", "name": "Confirm"}),
            )

            await self.wait_visible(
                self.catalog.candidate("create.published_success").extend(
                    {"text": "Published Successfully"}
                ),
                timeout_ms=Timeouts.PUBLISH_SUCCESS,
                interval_ms=Intervals.PUBLISH_SUCCESS,
                step="publish success",
            )
        return name

    async def go_to_collection(
        self, opener: PageOpener, expected_name: Optional[str] = None
    ) -> Tuple[PageDriver, str]:
        """
        Follow "Go to collection" into the new tab.

        Args:
            opener: Browser session that can catch the new tab
            expected_name: Collection name to look for on the new page

        Returns:
            Driver over the collection tab and its URL
        """
        async with self.step("Go to collection"):
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            button = await self.find(
                self.catalog.candidate("create.go_to_collection").extend({"text": "Go to collection"}),
                Timeouts.CHECK * 2,
            )
            handle = button.require()

            async def click_go() -> None:
                await self.driver.click(handle)

            collection = await opener.open_in_new_page(click_go)
            await collection.wait(Delays.AFTER_NAVIGATION)

            if expected_name:
                await self._check_collection_name(collection, expected_name)

            url = collection.current_url()
            logger.info(f"✅ Collection URL: {url}")
            return collection, url

    async def _check_collection_name(self, collection: PageDriver, expected_name: str) -> None:
        shown = await resolve(
            collection, LocatorCandidate.of(expected_name, {"text": expected_name}), Timeouts.CHECK * 2
        )
        if shown:
            logger.info("✅ Collection name displayed correctly")
        elif COLLECTION_PREFIX in await collection.page_text():
            logger.info(f"✅ Found '{COLLECTION_PREFIX}' on collection page")
        else:
            logger.warning("⚠️ Collection name not found, but page opened")
