"""Wallet setup: import the recovery phrase, add the test network and the journey account."""

from loguru import logger

from dopamint_e2e.constants import Delays, Timeouts
from dopamint_e2e.resilience.locators import LocatorCandidate
from dopamint_e2e.workflows.base import BasePage

ADD_NETWORK_ROUTE = "settings/networks/add-network"


class WalletSetupWorkflow(BasePage):
    """Onboard a new wallet extension profile from its home tab.

    Runs once per browser profile; the session marks the profile ready
    afterwards so later runs go straight to the dapp.
    """

    async def import_seed_phrase(self, seed_phrase: str, password: str) -> None:
        """
        Import an existing wallet from its recovery phrase.

        Args:
            seed_phrase: Space-separated recovery words
            password: New unlock password for the extension
        """
        words = seed_phrase.split()
        async with self.step("Import wallet recovery phrase"):
            await self.click("wallet_setup.terms_checkbox", required=False)
            await self.click("wallet_setup.import_wallet")
            await self.click("wallet_setup.metametrics_decline", required=False)

            word_selector = self.catalog.first("wallet_setup.srp_word")
            for index, word in enumerate(words):
                await self.fill(
                    LocatorCandidate.of(f"recovery word {index + 1}", word_selector.format(index=index)),
                    word,
                )
            await self.click("wallet_setup.srp_confirm")

            await self.fill("wallet_setup.password_new", password)
            await self.fill("wallet_setup.password_confirm", password)
            await self.click("wallet_setup.password_terms")
            await self.click("wallet_setup.password_import")

            await self.wait_visible(
                "wallet_setup.onboarding_done", timeout_ms=Timeouts.WALLET_IMPORT, step="wallet created"
            )
            await self.click("wallet_setup.onboarding_done")
            await self.click("wallet_setup.pin_next", required=False)
            await self.click("wallet_setup.pin_done", required=False)
            logger.info(f"🦊 Wallet imported from a {len(words)}-word recovery phrase")

    async def add_network(self, name: str, rpc_url: str, chain_id: int, symbol: str) -> None:
        async with self.step(f"Add network {name}"):
            home = self.driver.current_url().split("#")[0]
            await self.driver.goto(f"{home}#{ADD_NETWORK_ROUTE}")
            await self.driver.wait(Delays.AFTER_NAVIGATION)

            await self.fill("wallet_setup.network_name", name)
            await self.fill("wallet_setup.network_rpc", rpc_url)
            await self.fill("wallet_setup.network_chain_id", str(chain_id))
            await self.fill("wallet_setup.network_symbol", symbol)
            await self.click("wallet_setup.network_save")
            await self.wait_hidden(
                "wallet_setup.network_save",
                timeout_ms=Timeouts.WALLET_IMPORT,
                step=f"network {name} saved",
            )
            logger.info(f"🌐 Network {name} (chain {chain_id}) added")

    async def import_account(self, private_key: str) -> None:
        """Import the journey account from its private key."""
        async with self.step("Import account from private key"):
            await self.click("wallet_setup.account_menu")
            await self.click("wallet_setup.add_account")
            await self.click("wallet_setup.import_account")
            await self.fill("wallet_setup.private_key_input", private_key)
            await self.click("wallet_setup.import_account_confirm")
            await self.wait_hidden(
                "wallet_setup.private_key_input",
                timeout_ms=Timeouts.WALLET_IMPORT,
                step="account imported",
            )

    async def switch_account(self, account_name: str) -> None:
        async with self.step(f"Switch to {account_name}"):
            menu = await self.find("wallet_setup.account_menu")
            if account_name in (await self.driver.read_text(menu.require()) or ""):
                logger.info(f"{account_name} is already active")
                return

            await self.driver.click(menu.handle)
            await self.driver.wait(Delays.DROPDOWN_OPEN)
            await self.click(LocatorCandidate.of(account_name, {"text": account_name, "exact": True}))
            active = f'{self.catalog.first("wallet_setup.account_menu")}:has-text("{account_name}")'
            await self.wait_visible(
                LocatorCandidate.of(f"{account_name} active", active),
                timeout_ms=Timeouts.WALLET_POPUP,
                step=f"{account_name} active",
            )

    async def run(self) -> None:
        """Set the wallet up from the run settings."""
        settings = self.settings
        if settings.wallet_seed_phrase is None:
            raise ValueError("WALLET_SEED_PHRASE is required to set up the wallet")

        await self.import_seed_phrase(
            settings.wallet_seed_phrase.get_secret_value(),
            settings.wallet_password.get_secret_value(),
        )
        await self.add_network(
            settings.wallet_network_name,
            settings.wallet_network_rpc,
            settings.wallet_chain_id,
            settings.wallet_network_symbol,
        )
        if settings.wallet_private_key is not None:
            await self.import_account(settings.wallet_private_key.get_secret_value())
            await self.switch_account(settings.wallet_account_name)
