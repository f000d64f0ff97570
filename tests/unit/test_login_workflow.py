"""Tests for the login workflow."""

from unittest.mock import AsyncMock

import pytest
from fakes import FakeDriver, FakeWalletPages
from pydantic import SecretStr

from dopamint_e2e.core.exceptions import LoginError, WalletError, WorkflowStepError
from dopamint_e2e.workflows.login import LoginWorkflow

LOGIN = 'button:has-text("Login")'
SIGN_IN = 'role=button[name="Sign in with wallet"]'
METAMASK = 'button:has-text("MetaMask")'
MARKER = "text=MARKETPLACE"
TERMS = 'button:has-text("I have read")'
OVERLAY = 'div[role="dialog"]:visible'
COGNITO_URL = "https://dopamint.auth.us-east-1.amazoncognito.com/login?client_id=abc"


@pytest.fixture
def wallet():
    return AsyncMock()


@pytest.fixture
def make_login(driver, settings, catalog, clock, wallet):
    """Build a LoginWorkflow on the fake driver and clock."""

    def factory(pages=None, settings_override=None):
        return LoginWorkflow(
            driver,
            settings_override or settings,
            catalog,
            pages or FakeWalletPages(),
            wallet,
            retry_backoff=False,
            clock=clock,
            sleep=clock.sleep,
        )

    return factory


class TestNavigateAndLogin:
    """Test opening the marketplace."""

    @pytest.mark.asyncio
    async def test_no_gate(self, driver, make_login):
        """Test direct landing on the marketplace."""
        driver.add(MARKER)

        await make_login().navigate_and_login()

        assert driver.actions[0] == ("goto", "https://dev.dopamint.ai/")

    @pytest.mark.asyncio
    async def test_gate_without_credentials_fails(self, driver, make_login):
        """Test Cognito redirect without credentials is a non-recoverable failure."""

        async def redirect(url):
            driver.url = COGNITO_URL

        driver.goto = redirect

        with pytest.raises(WorkflowStepError) as exc_info:
            await make_login().navigate_and_login()

        assert exc_info.value.step == "Navigate to marketplace"
        assert isinstance(exc_info.value.__cause__, LoginError)
        assert exc_info.value.__cause__.recoverable is False

    @pytest.mark.asyncio
    async def test_gate_with_credentials(self, driver, settings, make_login):
        """Test the Cognito form is filled and submitted."""
        gated = settings.model_copy(
            update={"dopamint_email": "qa@dopamint.ai", "dopamint_password": SecretStr("pw")}
        )

        async def redirect(url):
            driver.url = COGNITO_URL

        driver.goto = redirect
        driver.add('role=textbox[name="name@host.com"]')
        driver.add('role=textbox[name="Password"]')
        driver.add('role=button[name="submit"]', on_click=lambda: setattr(driver, "url", settings.base_url))
        driver.add(MARKER)

        await make_login(settings_override=gated).navigate_and_login()

        fills = [a for a in driver.actions if a[0] == "fill"]
        assert fills == [
            ("fill", 'role=textbox[name="name@host.com"]', "qa@dopamint.ai"),
            ("fill", 'role=textbox[name="Password"]', "pw"),
        ]
        assert driver.clicks() == ['role=button[name="submit"]']

    @pytest.mark.asyncio
    async def test_marketplace_never_loads(self, driver, make_login):
        """Test a missing marketplace marker fails the step with a screenshot."""
        with pytest.raises(WorkflowStepError) as exc_info:
            await make_login().navigate_and_login()

        assert exc_info.value.screenshot_path is not None


class TestPopups:
    """Test popup cleanup."""

    @pytest.mark.asyncio
    async def test_terms_accepted_first(self, driver, make_login):
        """Test the terms dialog is accepted before generic dismissal."""
        driver.add(OVERLAY)
        driver.add(TERMS, on_click=driver.hider(OVERLAY))

        assert await make_login().close_all_popups() is True
        assert driver.clicks() == [TERMS]

    @pytest.mark.asyncio
    async def test_clean_page(self, driver, make_login):
        """Test no clicks on a clean page."""
        assert await make_login().close_all_popups() is True
        assert driver.actions == []


class TestWalletLogin:
    """Test wallet sign-in."""

    @pytest.mark.asyncio
    async def test_connect_and_sign(self, driver, make_login, wallet):
        """Test the connect and sign popups are confirmed."""
        driver.add(LOGIN)
        driver.add(SIGN_IN)
        driver.add(METAMASK)
        popup = FakeDriver(url="chrome-extension://mm/notification.html")
        popup.add('button:has-text("Connect")')
        popup.add('button:has-text("Sign")', on_click=driver.hider(LOGIN))
        pages = FakeWalletPages([popup])

        await make_login(pages).login_with_wallet()

        assert driver.clicks() == [LOGIN, SIGN_IN, METAMASK]
        assert popup.clicks() == [
            'button:has-text("Connect")',
            'button:has-text("Connect")',
            'button:has-text("Sign")',
        ]
        wallet.approve.assert_not_awaited()
        wallet.sign.assert_not_awaited()
        assert pages.closed == 1

    @pytest.mark.asyncio
    async def test_already_logged_in(self, driver, make_login):
        """Test no login dialog is opened when the Login button is gone."""
        await make_login().login_with_wallet()
        assert driver.clicks() == []

    @pytest.mark.asyncio
    async def test_falls_back_to_wallet_automation(self, driver, make_login, wallet):
        """Test approve/sign fallbacks run when no popup shows up."""
        driver.add(LOGIN)
        driver.add(SIGN_IN)
        driver.add(METAMASK)
        wallet.sign.side_effect = driver.hider(LOGIN)

        await make_login().login_with_wallet()

        wallet.approve.assert_awaited_once()
        wallet.sign.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unconfirmed_login_retries_then_fails(self, driver, make_login, wallet):
        """Test every attempt failing ends in a step error caused by LoginError."""
        driver.add(LOGIN)
        driver.add(SIGN_IN)
        driver.add(METAMASK)
        wallet.approve.side_effect = LoginError("rejected")

        with pytest.raises(WorkflowStepError) as exc_info:
            await make_login().login_with_wallet(attempts=2)

        assert exc_info.value.step == "Login with wallet"
        assert isinstance(exc_info.value.__cause__, LoginError)
        assert driver.clicks().count(METAMASK) == 2

    @pytest.mark.asyncio
    async def test_wallet_errors_are_not_fatal(self, driver, make_login, wallet):
        """Test WalletError from the fallback is logged and the attempt continues."""
        driver.add(LOGIN)
        driver.add(SIGN_IN)
        driver.add(METAMASK)
        wallet.approve.side_effect = WalletError("no popup")
        wallet.sign.side_effect = driver.hider(LOGIN)

        await make_login().login_with_wallet()

        wallet.sign.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_wallet_option(self, driver, make_login):
        """Test a login dialog without MetaMask fails the step."""
        driver.add(LOGIN)
        driver.add(SIGN_IN)

        with pytest.raises(WorkflowStepError) as exc_info:
            await make_login().login_with_wallet(attempts=1)

        assert "MetaMask" in str(exc_info.value)


class TestVerifyLoggedIn:
    """Test login verification retries."""

    @pytest.mark.asyncio
    async def test_logged_in_immediately(self, driver, make_login):
        """Test a hidden Login button passes on the first check."""
        await make_login().verify_logged_in()
        assert driver.waits[0] == 2500

    @pytest.mark.asyncio
    async def test_pending_popup_clicked(self, driver, make_login):
        """Test pending wallet buttons are clicked during quick checks."""
        driver.add(LOGIN)
        popup = FakeDriver(url="chrome-extension://mm/notification.html")
        popup.add('button:has-text("Confirm")', on_click=driver.hider(LOGIN))

        await make_login(FakeWalletPages([popup])).verify_logged_in()

        assert popup.clicks() == ['button:has-text("Confirm")']
        assert ("reload",) not in driver.actions

    @pytest.mark.asyncio
    async def test_reload_from_second_attempt(self, driver, make_login):
        """Test the page is reloaded from the second quick check on."""
        driver.add(LOGIN)
        reloads = []

        async def reload():
            reloads.append(1)
            driver.hide(LOGIN)

        driver.reload = reload

        await make_login().verify_logged_in()

        assert reloads == [1]

    @pytest.mark.asyncio
    async def test_full_retry_recovers(self, driver, make_login, wallet):
        """Test a full wallet login retry can fix the session."""
        driver.add(LOGIN)
        workflow = make_login()
        workflow.login_with_wallet = AsyncMock(side_effect=driver.hider(LOGIN))

        await workflow.verify_logged_in(quick_retries=1, full_retries=2)

        wallet.approve.assert_awaited_once()
        workflow.login_with_wallet.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_still_visible_fails(self, driver, make_login, settings):
        """Test exhausted retries raise a non-recoverable login failure."""
        driver.add(LOGIN)
        workflow = make_login()
        workflow.login_with_wallet = AsyncMock(side_effect=LoginError("again"))

        with pytest.raises(WorkflowStepError) as exc_info:
            await workflow.verify_logged_in(quick_retries=2, full_retries=1)

        assert exc_info.value.step == "Verify Login button hidden"
        assert exc_info.value.__cause__.recoverable is False
        assert exc_info.value.screenshot_path.endswith("verify_login_button_hidden.png")
        shots = list((settings.output_dir / "errors").glob("*.png"))
        assert len(shots) == 1


class TestEmailLogin:
    """Test email one-time code login."""

    @pytest.mark.asyncio
    async def test_code_typed_digit_by_digit(self, driver, make_login):
        """Test the OTP is requested, read and typed."""
        driver.add(LOGIN)
        driver.add('input[placeholder="Email address"]')
        driver.add('button[aria-label="Next"]')
        driver.add("text=Enter the verification code")
        driver.add('input[aria-label="Please enter verification code. Digit 1"]')
        driver.key_handlers["6"] = driver.hider(LOGIN)
        provider = AsyncMock()
        provider.fetch_code.return_value = "123456"

        await make_login().login_with_email(provider, "qa@dopamint.ai")

        assert ("fill", 'input[placeholder="Email address"]', "qa@dopamint.ai") in driver.actions
        presses = [a[1] for a in driver.actions if a[0] == "press"]
        assert presses == list("123456")
        assert provider.fetch_code.await_args.args[0] == "qa@dopamint.ai"

    @pytest.mark.asyncio
    async def test_requires_email(self, make_login):
        """Test missing LOGIN_EMAIL raises LoginError."""
        with pytest.raises(LoginError, match="LOGIN_EMAIL"):
            await make_login().login_with_email(AsyncMock())
