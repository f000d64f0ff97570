"""Login workflow: Cognito gate, popup cleanup, wallet and email logins."""

import asyncio
import time
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from dopamint_e2e.constants import Delays, Intervals, Retries, Timeouts
from dopamint_e2e.core.exceptions import LoginError, WalletError
from dopamint_e2e.core.retry import get_wallet_login_retry
from dopamint_e2e.core.settings import E2ESettings
from dopamint_e2e.resilience.driver import PageDriver
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.resilience.polling import Clock, PollSpec, Sleep, hidden, poll_until
from dopamint_e2e.resilience.resolution import resolve
from dopamint_e2e.selector.catalog import SelectorCatalog
from dopamint_e2e.services.otp import OTPProvider, wait_for_otp
from dopamint_e2e.services.wallet import (
    CONNECT_TEXTS,
    SIGN_TEXTS,
    WalletAutomation,
    WalletPageSource,
    confirm_popup,
    wallet_button_candidate,
)
from dopamint_e2e.utils.error_capture import ErrorCapture
from dopamint_e2e.workflows.base import BasePage

COGNITO_HOST = "amazoncognito.com/login"
PENDING_WALLET_TEXTS = ("Confirm", "Sign", "Next", "Connect", "Approve")


class LoginWorkflow(BasePage):
    """Dopamint login: Cognito gate, then wallet (or email OTP) sign-in."""

    def __init__(
        self,
        driver: PageDriver,
        settings: E2ESettings,
        catalog: SelectorCatalog,
        pages: WalletPageSource,
        wallet: WalletAutomation,
        error_capture: Optional[ErrorCapture] = None,
        retry_backoff: bool = True,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize login workflow.

        Args:
            driver: Driver over the dapp tab
            settings: Run settings
            catalog: Selector catalog
            pages: Source of wallet extension pages
            wallet: Fallback wallet automation (approve/sign)
            error_capture: Failure diagnostics writer
            retry_backoff: Back off between wallet-login attempts
            clock: Monotonic clock
            sleep: Async sleep used by polling
        """
        super().__init__(driver, settings, catalog, error_capture, clock, sleep)
        self.pages = pages
        self.wallet = wallet
        self.retry_backoff = retry_backoff
        self.login_button = catalog.candidate("login.login_button", target="Login button")

    async def navigate_and_login(self) -> None:
        """
        Open the marketplace, passing the Cognito gate when redirected.

        Raises:
            LoginError: If the gate needs credentials that are not configured
            PollTimeoutError: If the marketplace never shows up
        """
        async with self.step("Navigate to marketplace"):
            await self.driver.goto(self.settings.base_url)
            await self.driver.wait(Delays.AFTER_NAVIGATION)

            if COGNITO_HOST in self.driver.current_url():
                if not self.settings.has_cognito_credentials():
                    raise LoginError(
                        "Redirected to Cognito but DOPAMINT_EMAIL/DOPAMINT_PASSWORD are not set",
                        recoverable=False,
                    )
                logger.info("🔐 Logging into Dopamint gate...")
                await self.fill("login.cognito_email", self.settings.dopamint_email)
                await self.fill(
                    "login.cognito_password", self.settings.dopamint_password.get_secret_value()
                )
                await self.click("login.cognito_submit")
                await self.wait_until_url_leaves(COGNITO_HOST)
                logger.info("✅ Email/password login successful")

            await self.wait_visible(
                "login.marketplace_marker",
                timeout_ms=Timeouts.MARKETPLACE_VISIBLE,
                step="marketplace homepage",
            )

    async def wait_until_url_leaves(self, fragment: str) -> None:
        """Poll the current URL until it no longer contains ``fragment``."""
        spec = PollSpec(
            lambda: fragment not in self.driver.current_url(),
            interval_ms=Intervals.DEFAULT,
            timeout_ms=Timeouts.NAVIGATION,
            description=f"leave {fragment}",
        )
        (await poll_until(spec, clock=self._clock, sleep=self._sleep)).raise_for_timeout()

    async def close_all_popups(self) -> bool:
        """Accept the terms dialog if shown, then dismiss whatever else blocks the page."""
        terms = await self.find("dialog.terms_accept", Timeouts.CHECK_QUICK)
        if terms:
            logger.info("Closing Terms of Service popup...")
            await self.driver.click(terms.handle)
            await self.driver.wait(Delays.AFTER_CLICK)
        return await self.close_popups()

    async def is_logged_in(self, check_timeout_ms: int = Timeouts.CHECK_QUICK) -> bool:
        """Logged in means the Login button is not visible."""
        return not (await resolve(self.driver, self.login_button, check_timeout_ms)).found

    def _remaining_ms(self, deadline: float) -> float:
        return max(0.0, (deadline - self._clock()) * 1000)

    async def _poll_wallet_page(self, timeout_ms: float, description: str) -> Optional[PageDriver]:
        """Poll for an open wallet popup; None when none appeared in time."""
        found: List[PageDriver] = []

        async def popup_open() -> bool:
            popup = await self.pages.find_wallet_page()
            if popup is not None:
                found.append(popup)
                return True
            return False

        if timeout_ms <= 0:
            return None
        outcome = await poll_until(
            PollSpec(popup_open, Intervals.WALLET_POPUP, timeout_ms, description),
            clock=self._clock,
            sleep=self._sleep,
        )
        return found[-1] if outcome else None

    async def _approve_connection(self, deadline: float) -> None:
        popup = await self._poll_wallet_page(self._remaining_ms(deadline), "wallet connect popup")
        if popup is None:
            logger.info("No connect popup found, trying wallet.approve()...")
            await self._wallet_fallback("approve")
            return

        await popup.scroll(1000)
        await popup.wait(Delays.AFTER_CLICK)
        candidate = wallet_button_candidate(self.catalog, "confirm", CONNECT_TEXTS)
        check_ms = int(min(Timeouts.WALLET_BUTTON, self._remaining_ms(deadline)))
        if not await confirm_popup(popup, candidate, check_ms):
            logger.info("Connect button not clicked, trying wallet.approve()...")
            await self._wallet_fallback("approve")
            return

        # Connect is usually two screens (Next, then Connect)
        await popup.wait(int(min(800, self._remaining_ms(deadline))))
        if self._remaining_ms(deadline) > 0:
            await confirm_popup(
                popup, candidate, int(min(Timeouts.WALLET_BUTTON, self._remaining_ms(deadline)))
            )

    async def _sign_request(self, deadline: float) -> None:
        await self.driver.wait(Delays.AFTER_NAVIGATION // 2)
        popup = await self._poll_wallet_page(
            min(4000, self._remaining_ms(deadline)), "wallet sign popup"
        )
        if popup is None or self._remaining_ms(deadline) <= 0:
            if not await self.is_logged_in(Timeouts.CHECK_INSTANT):
                logger.info("No sign popup found but still not logged in, trying wallet.sign()...")
                await self._wallet_fallback("sign")
            return

        await popup.press_key("End")
        await popup.scroll(1000)
        await popup.wait(Delays.AFTER_CLICK)
        candidate = wallet_button_candidate(self.catalog, "sign", SIGN_TEXTS)
        check_ms = int(min(Timeouts.WALLET_BUTTON, self._remaining_ms(deadline)))
        if not await confirm_popup(popup, candidate, check_ms):
            logger.info("Sign button not clicked, trying wallet.sign()...")
            await self._wallet_fallback("sign")

    async def _wallet_fallback(self, operation: str) -> None:
        try:
            await getattr(self.wallet, operation)()
        except WalletError as e:
            logger.warning(f"wallet.{operation}() failed: {e}")

    async def _wallet_login_attempt(self) -> None:
        """
        One wallet-login attempt inside a fixed window.

        Raises:
            LoginError: If the Login button is still visible when the window closes
            ResolutionNotFoundError: If the login dialog controls are missing
        """
        await self.close_all_popups()
        await self.pages.close_wallet_pages()

        login = await self.find(self.login_button)
        if not login:
            logger.info("✅ Already logged in")
            return

        await self.driver.click(login.handle)
        await self.driver.wait(1200)
        await self.click("login.sign_in_with_wallet")
        await self.driver.wait(Delays.AFTER_UPLOAD)

        metamask = await self.find("login.metamask_option", Timeouts.CHECK_QUICK + 1000)
        metamask.require()
        deadline = self._clock() + Timeouts.WALLET_ATTEMPT / 1000
        await self.driver.click(metamask.handle)

        await self._approve_connection(deadline)
        await self._sign_request(deadline)

        outcome = await poll_until(
            PollSpec(
                hidden(self.driver, self.login_button),
                interval_ms=Intervals.LOGIN_HIDDEN,
                timeout_ms=self._remaining_ms(deadline),
                description="Login button hidden",
            ),
            clock=self._clock,
            sleep=self._sleep,
        )
        if outcome:
            logger.info(f"✅ Wallet login confirmed within {Timeouts.WALLET_ATTEMPT / 1000:.0f}s window")
            return

        logger.warning("⚠️ Wallet login not confirmed in window, closing popups and retrying")
        await self.pages.close_wallet_pages()
        await self.close_all_popups()
        await self.driver.wait(Delays.AFTER_NAVIGATION // 2)
        raise LoginError("Wallet login not confirmed within attempt window")

    async def login_with_wallet(self, attempts: int = Retries.MAX_WALLET_LOGIN) -> None:
        """
        Sign in with the wallet extension, retrying whole attempts.

        Raises:
            LoginError: If every attempt failed
        """
        attempt = get_wallet_login_retry(attempts=attempts, backoff=self.retry_backoff)(
            self._wallet_login_attempt
        )
        async with self.step("Login with wallet"):
            await attempt()

    async def _click_pending_wallet_buttons(self) -> None:
        popup = await self.pages.find_wallet_page()
        if popup is None:
            return
        logger.info(f"Found pending wallet popup: {popup.current_url()}")
        try:
            for text in PENDING_WALLET_TEXTS:
                candidate = LocatorCandidate.of(f"wallet {text}", f'button:has-text("{text}")')
                result = await resolve(popup, candidate, Timeouts.CHECK_INSTANT)
                if result:
                    logger.info(f"Clicking wallet button: {text}")
                    await popup.click(result.handle)
                    await popup.wait(Delays.AFTER_NAVIGATION // 2)
        except Exception as e:
            logger.warning(f"Wallet popup handling error: {e}")

    async def verify_logged_in(
        self,
        quick_retries: int = Retries.MAX_LOGIN_VERIFY_QUICK,
        full_retries: int = Retries.MAX_LOGIN_VERIFY_FULL,
    ) -> None:
        """
        Assert the Login button is gone, nudging the wallet if it is not.

        Quick checks click through pending wallet popups and, from the second
        try, reload the page. Full retries approve through the wallet and then
        re-run the wallet login.

        Raises:
            LoginError: If the Login button is still visible after all retries
        """
        async with self.step("Verify Login button hidden"):
            for attempt in range(1, quick_retries + 1):
                await self.driver.wait(Timeouts.LOGIN_HIDDEN_QUICK)
                if await self.is_logged_in():
                    logger.info("✅ Login button is not visible, wallet connected")
                    return
                logger.info(f"Login button still visible, attempt {attempt}/{quick_retries}")

                await self._click_pending_wallet_buttons()
                if attempt >= 2:
                    logger.info("Reloading page to refresh wallet state...")
                    await self.driver.reload()
                    await self.driver.wait(Delays.AFTER_NAVIGATION)
                    await self.close_all_popups()

            for full_attempt in range(1, full_retries + 1):
                logger.info(f"🔄 Retry {full_attempt}/{full_retries}: full wallet connection flow")
                await self.close_all_popups()
                await self._wallet_fallback("approve")

                await self.driver.wait(3000)
                if await self.is_logged_in():
                    logger.info("✅ Login button is not visible after wallet.approve()")
                    return

                try:
                    await self.login_with_wallet()
                except Exception as e:
                    logger.warning(f"⚠️ Full retry {full_attempt} failed: {e}")
                    continue

                await self.driver.wait(3000)
                if await self.is_logged_in():
                    logger.info("✅ Login button is not visible after full retry")
                    return
                logger.info(f"Login button still visible after full retry {full_attempt}/{full_retries}")

            raise LoginError(
                "Login button still visible after wallet connection retries", recoverable=False
            )

    async def login_with_email(self, otp_provider: OTPProvider, email: Optional[str] = None) -> None:
        """
        Sign in with an email one-time code.

        Args:
            otp_provider: Mailbox the code is read from
            email: Address to log in with (defaults to ``LOGIN_EMAIL``)

        Raises:
            LoginError: If no login email is configured
            OTPTimeoutError: If the code never arrives
        """
        address = email or self.settings.login_email
        if not address:
            raise LoginError("LOGIN_EMAIL is not set", recoverable=False)

        async with self.step("Login with email"):
            await self.close_all_popups()
            await self.click(self.login_button)
            await self.fill("login.email_input", address)
            requested_at = datetime.now(timezone.utc)
            await self.click("login.next_button")
            await self.wait_visible(
                "login.verification_state", timeout_ms=Timeouts.NAVIGATION, step="OTP prompt"
            )

            code = await wait_for_otp(
                otp_provider, address, requested_at, clock=self._clock, sleep=self._sleep
            )
            await self.click("login.otp_first_digit")
            for digit in code:
                await self.driver.press_key(digit)

            await self.wait_hidden(
                self.login_button,
                timeout_ms=Timeouts.LOGIN_HIDDEN_FULL,
                interval_ms=Intervals.LOGIN_HIDDEN,
                step="Login button hidden",
            )
