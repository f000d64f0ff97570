"""Run one Dopamint journey in an isolated browser, bounded by a workflow timeout."""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from loguru import logger

from dopamint_e2e.browser import BrowserSession
from dopamint_e2e.constants import WorkflowOffsets
from dopamint_e2e.core.exceptions import WorkflowStepError
from dopamint_e2e.core.logger import workflow_ctx
from dopamint_e2e.core.settings import E2ESettings
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.selector.catalog import SelectorCatalog, get_selector_catalog
from dopamint_e2e.services.notification import TelegramNotifier, WorkflowReport
from dopamint_e2e.services.stagger import stagger_start
from dopamint_e2e.services.wallet import ExtensionWallet
from dopamint_e2e.utils.error_capture import ErrorCapture
from dopamint_e2e.workflows import (
    AIModel,
    BasePage,
    CreateWorkflow,
    LoginWorkflow,
    MintWorkflow,
    SearchWorkflow,
    SellWorkflow,
    WalletSetupWorkflow,
)


@dataclass
class JourneyOptions:
    """Inputs of a journey beyond the run settings."""

    model: AIModel = AIModel.NANO_BANANA_PRO
    template: str = "motorbike"
    image: Optional[Path] = None
    mint_images: List[Path] = field(default_factory=list)
    collection_url: Optional[str] = None
    collection_name: Optional[str] = None


@dataclass
class JourneyContext:
    """Everything a journey needs; built once per worker."""

    session: BrowserSession
    driver: PageDriver
    settings: E2ESettings
    catalog: SelectorCatalog
    error_capture: ErrorCapture
    options: JourneyOptions
    details: Dict[str, str] = field(default_factory=dict)
    artifacts: List[str] = field(default_factory=list)

    def login(self) -> LoginWorkflow:
        wallet = ExtensionWallet(self.session, self.catalog)
        return LoginWorkflow(
            self.driver, self.settings, self.catalog, self.session, wallet, self.error_capture
        )

    async def milestone(self, page: BasePage, name: str) -> None:
        """Screenshot ``page`` and keep the image for the run report."""
        path = await page.milestone(name)
        if path:
            self.artifacts.append(path)


async def setup_wallet(ctx: JourneyContext) -> None:
    """Onboard the wallet extension once per profile."""
    if not ctx.session.wallet_setup_needed():
        return
    logger.info("🦊 Wallet profile is new, importing the test wallet")
    home = await ctx.session.wallet_home()
    await WalletSetupWorkflow(home, ctx.settings, ctx.catalog, ctx.error_capture).run()
    ctx.session.mark_wallet_ready()


async def login_journey(ctx: JourneyContext) -> None:
    await setup_wallet(ctx)
    login = ctx.login()
    await login.navigate_and_login()
    await login.close_all_popups()
    await login.login_with_wallet()
    await login.verify_logged_in()
    await ctx.milestone(login, "wallet-connected")
    if ctx.settings.storage_state_path:
        await ctx.session.save_storage_state()


async def _mint_and_verify(mint: MintWorkflow, ctx: JourneyContext) -> None:
    images = ctx.options.mint_images
    if not images:
        raise ValueError("--mint-image is required to mint")

    baseline = await mint.capture_baseline()
    await mint.start_mint(images)
    count = await mint.wait_for_mint_success()
    await ctx.milestone(mint, "mint-success")
    await mint.close_success_popup()

    verification = await mint.wait_for_new_tokens(baseline, count)
    ctx.details["minted"] = str(count)
    ctx.details["token_urls"] = " ".join(verification.token_urls)
    if not verification.verified:
        raise WorkflowStepError(
            "Verify minted NFTs",
            0,
            cause=AssertionError(
                f"expected {count} new NFT(s) above #{baseline}, found {len(verification.new_ids)}"
            ),
        )


async def create_journey(ctx: JourneyContext) -> None:
    """Log in, create and publish a collection, then mint into it."""
    if ctx.options.image is None:
        raise ValueError("--image is required for the create journey")

    await login_journey(ctx)
    create = CreateWorkflow(ctx.driver, ctx.settings, ctx.catalog, ctx.error_capture)
    await create.click_create()
    await create.choose_template(ctx.options.template)
    await create.select_model(ctx.options.model)
    await create.upload_image(ctx.options.image)
    await create.generate()
    await create.wait_for_generation()
    await ctx.milestone(create, "after-generate")
    name = await create.publish_collection(ctx.options.collection_name)
    await ctx.milestone(create, "publish-success")
    collection, url = await create.go_to_collection(ctx.session, expected_name=name)
    ctx.details["collection"] = name
    ctx.details["collection_url"] = url

    mint = MintWorkflow(collection, ctx.settings, ctx.catalog, ctx.error_capture)
    await ctx.milestone(mint, "collection-details")
    if ctx.options.mint_images:
        await _mint_and_verify(mint, ctx)


async def _open_collection(ctx: JourneyContext) -> None:
    """
    Open the journey's collection.

    With a name the collection is found through the header search (and the
    result must link to the URL when one is given too); with only a URL the
    page is opened directly.
    """
    name, url = ctx.options.collection_name, ctx.options.collection_url
    if name:
        search = SearchWorkflow(ctx.driver, ctx.settings, ctx.catalog, ctx.error_capture)
        await search.open_search()
        url = await search.search_and_open(name, collection_url=url)
    elif url:
        await ctx.driver.goto(url)
    else:
        raise ValueError("--collection-url or --collection-name is required for this journey")
    ctx.details["collection_url"] = url


async def mint_journey(ctx: JourneyContext) -> None:
    """Log in, open an existing collection and mint into it."""
    await login_journey(ctx)
    await _open_collection(ctx)
    mint = MintWorkflow(ctx.driver, ctx.settings, ctx.catalog, ctx.error_capture)
    if ctx.options.collection_name:
        await mint.verify_collection_title(ctx.options.collection_name)
    await ctx.milestone(mint, "collection-details")
    await _mint_and_verify(mint, ctx)


async def sell_journey(ctx: JourneyContext) -> None:
    """Log in, open a collection and list the first owned NFT."""
    await login_journey(ctx)
    await _open_collection(ctx)
    mint = MintWorkflow(ctx.driver, ctx.settings, ctx.catalog, ctx.error_capture)
    await mint.click_mint_this()
    sell = SellWorkflow(ctx.driver, ctx.settings, ctx.catalog, ctx.error_capture)
    await sell.open_my_collectible()
    token_id = await sell.start_sell_on_first_nft()
    await sell.confirm_sell()
    ctx.details["sold_url"] = await sell.wait_for_sold(token_id)
    await ctx.milestone(sell, "sell-success")


Journey = Callable[[JourneyContext], Awaitable[None]]

JOURNEYS: Dict[str, Journey] = {
    "login": login_journey,
    "create": create_journey,
    "mint": mint_journey,
    "sell": sell_journey,
}

OFFSETS: Dict[str, int] = {
    "login": WorkflowOffsets.LOGIN,
    "create": WorkflowOffsets.CREATE,
    "mint": WorkflowOffsets.MINT,
    "sell": WorkflowOffsets.SELL,
}


async def run_workflow(
    name: str,
    settings: E2ESettings,
    options: Optional[JourneyOptions] = None,
    worker_index: int = 0,
    session_factory: Callable[[E2ESettings, int], BrowserSession] = BrowserSession,
    notifier: Optional[TelegramNotifier] = None,
    stagger: bool = True,
) -> WorkflowReport:
    """
    Run a named journey and report its outcome.

    The journey runs under ``asyncio.wait_for`` with the configured workflow
    timeout; on expiry the in-flight wait is cancelled at its next suspension
    point. Failures never escape: they end up in the returned report.

    Args:
        name: Journey name (see ``JOURNEYS``)
        settings: Run settings
        options: Journey inputs
        worker_index: Worker number for staggering and the browser profile
        session_factory: Builds the browser session
        notifier: Report sink (built from settings when omitted)
        stagger: Delay the start by the worker's slot

    Returns:
        WorkflowReport
    """
    if name not in JOURNEYS:
        raise ValueError(f"Unknown workflow '{name}'. Choose from: {', '.join(JOURNEYS)}")

    token = workflow_ctx.set(f"{name}#{worker_index}")
    notifier = notifier or TelegramNotifier(settings)
    error_capture = ErrorCapture(settings.output_dir / "errors")
    error_capture.cleanup_old_errors()
    details: Dict[str, str] = {}
    error: Optional[str] = None
    failed_step: Optional[str] = None
    artifacts: List[str] = []
    start = time.monotonic()

    try:
        if stagger:
            await stagger_start(
                worker_index,
                OFFSETS[name],
                settings.stagger_seconds,
                settings.max_stagger_seconds,
            )

        session = session_factory(settings, worker_index)
        async with session:
            ctx = JourneyContext(
                session=session,
                driver=await session.driver(),
                settings=settings,
                catalog=get_selector_catalog(settings.selectors_file),
                error_capture=error_capture,
                options=options or JourneyOptions(),
                details=details,
                artifacts=artifacts,
            )
            logger.info(f"🚀 Starting {name} (timeout {settings.workflow_timeout_seconds}s)")
            try:
                await asyncio.wait_for(
                    JOURNEYS[name](ctx), timeout=settings.workflow_timeout_seconds
                )
            except WorkflowStepError:
                raise
            except Exception as e:
                # capture before the session closes the browser
                record = await error_capture.capture(ctx.driver, e, {"step": name, "workflow": name})
                if record.get("screenshot"):
                    artifacts.append(record["screenshot"])
                raise
    except asyncio.TimeoutError:
        error = f"Workflow timed out after {settings.workflow_timeout_seconds}s"
        logger.error(f"⏰ {name}: {error}")
    except WorkflowStepError as e:
        error = str(e)
        failed_step = e.step
        if e.screenshot_path:
            artifacts.append(e.screenshot_path)
        logger.error(f"❌ {name} failed at step '{e.step}'")
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        logger.exception(f"❌ {name} failed: {e}")
    finally:
        workflow_ctx.reset(token)

    report = WorkflowReport(
        name=name,
        passed=error is None,
        duration_seconds=time.monotonic() - start,
        worker_index=worker_index,
        error=error,
        failed_step=failed_step,
        artifacts=artifacts,
        details=details,
    )
    if report.passed:
        logger.info(f"✅ {name} passed in {report.duration_seconds:.1f}s")
    await notifier.send_report(report)
    return report
