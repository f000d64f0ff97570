"""Tests for wallet popup confirmation."""

import pytest
from fakes import FakeDriver, FakeWalletPages

from dopamint_e2e.core.exceptions import WalletError
from dopamint_e2e.services.wallet import (
    CONNECT_TEXTS,
    ExtensionWallet,
    confirm_popup,
    wallet_button_candidate,
)


class TestWalletButtonCandidate:
    """Test candidate construction."""

    def test_catalog_entries_then_texts(self, catalog):
        """Test test-id selectors come before the per-label text strategies."""
        candidate = wallet_button_candidate(catalog, "confirm", CONNECT_TEXTS)
        described = candidate.describe()

        assert described[-len(CONNECT_TEXTS):] == [
            f'button:has-text("{text}")' for text in CONNECT_TEXTS
        ]
        assert len(described) > len(CONNECT_TEXTS)
        assert candidate.target == "wallet confirm button"


class TestConfirmPopup:
    """Test clicking wallet buttons."""

    @pytest.mark.asyncio
    async def test_clicks_enabled_button(self, catalog):
        """Test an enabled button is clicked."""
        popup = FakeDriver(url="chrome-extension://x/notification.html")
        popup.add('button:has-text("Connect")')
        candidate = wallet_button_candidate(catalog, "confirm", CONNECT_TEXTS)

        assert await confirm_popup(popup, candidate, 100) is True
        assert popup.clicks() == ['button:has-text("Connect")']

    @pytest.mark.asyncio
    async def test_disabled_button_scrolls_once(self, catalog):
        """Test a disabled button gets one scroll and is skipped if still disabled."""
        popup = FakeDriver()
        popup.add('button:has-text("Confirm")', enabled=False)
        candidate = wallet_button_candidate(catalog, "sign", ["Confirm"])

        assert await confirm_popup(popup, candidate, 100) is False
        assert ("scroll", 1000) in popup.actions
        assert popup.clicks() == []

    @pytest.mark.asyncio
    async def test_no_button(self, catalog):
        """Test False when nothing matches."""
        candidate = wallet_button_candidate(catalog, "sign", ["Sign"])
        assert await confirm_popup(FakeDriver(), candidate, 100) is False


class TestExtensionWallet:
    """Test approve/sign via the extension page."""

    @pytest.mark.asyncio
    async def test_approve_clicks_connect(self, catalog):
        """Test approve scrolls the popup and clicks its button."""
        popup = FakeDriver()
        popup.add('button:has-text("Connect")')
        wallet = ExtensionWallet(FakeWalletPages([popup]), catalog, check_timeout_ms=100)

        await wallet.approve()

        assert ("press", "End") in popup.actions
        assert popup.clicks() == ['button:has-text("Connect")']

    @pytest.mark.asyncio
    async def test_sign_without_popup_raises(self, catalog):
        """Test WalletError when no popup is open."""
        wallet = ExtensionWallet(FakeWalletPages([]), catalog)

        with pytest.raises(WalletError, match="No wallet popup"):
            await wallet.sign()

    @pytest.mark.asyncio
    async def test_sign_without_button_raises(self, catalog):
        """Test WalletError lists the tried strategies."""
        popup = FakeDriver(url="chrome-extension://x/notification.html")
        wallet = ExtensionWallet(FakeWalletPages([popup]), catalog, check_timeout_ms=100)

        with pytest.raises(WalletError) as exc_info:
            await wallet.sign()

        assert exc_info.value.details["url"] == "chrome-extension://x/notification.html"
        assert 'button:has-text("Sign")' in exc_info.value.details["tried"]
