"""Run settings with Pydantic validation."""

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dopamint_e2e.constants import Intervals, Stagger, Timeouts

SEED_PHRASE_LENGTHS = (12, 15, 18, 21, 24)


class E2ESettings(BaseSettings):
    """Settings for an E2E run, read from the environment and ``.env.test``.

    The object is built once by the runner and passed into every workflow;
    engines and workflows never read the environment themselves.
    """

    # Target
    base_url: str = Field(default="https://dev.dopamint.ai/", description="Marketplace URL")
    env: str = Field(default="dev", description="Target environment (dev, staging, production)")

    # Cognito gate credentials
    dopamint_email: str = Field(default="", description="Cognito login email")
    dopamint_password: SecretStr = Field(default=SecretStr(""), description="Cognito password")

    # Email/OTP login account
    login_email: str = Field(default="", description="Mailbox used for email OTP login")

    # Browser
    headless: bool = Field(default=False, description="Run browser in headless mode")
    output_dir: Path = Field(default=Path("test-results"), description="Screenshots and records")
    user_data_root: Path = Field(
        default=Path(".browser-profiles"), description="Per-worker persistent profiles"
    )
    wallet_extension_path: Optional[Path] = Field(
        default=None, description="Unpacked wallet extension to load"
    )
    storage_state_path: Optional[Path] = Field(
        default=None, description="Saved session state used to skip the Cognito login"
    )
    selectors_file: Optional[Path] = Field(
        default=None, description="Override for the bundled selector catalog"
    )
    fresh_profile: bool = Field(
        default=False, description="Wipe the worker profile (and its wallet) before launch"
    )

    # Wallet extension setup, run once per profile
    wallet_seed_phrase: Optional[SecretStr] = Field(
        default=None, description="Recovery phrase imported into a new wallet profile"
    )
    wallet_password: SecretStr = Field(default=SecretStr(""), description="Wallet unlock password")
    wallet_private_key: Optional[SecretStr] = Field(
        default=None, description="Private key of the account used for the journeys"
    )
    wallet_account_name: str = Field(default="Account 2", description="Account switched to after import")
    wallet_network_name: str = Field(default="Base Sepolia")
    wallet_network_rpc: str = Field(default="https://base-sepolia-rpc.publicnode.com")
    wallet_chain_id: int = Field(default=84532, gt=0)
    wallet_network_symbol: str = Field(default="ETH")

    # Engine defaults
    check_timeout_ms: int = Field(default=Timeouts.CHECK, gt=0, le=60_000)
    poll_interval_ms: int = Field(default=Intervals.DEFAULT, gt=0, le=60_000)

    # Scheduling
    workflow_timeout_seconds: int = Field(default=Timeouts.WORKFLOW_SECONDS, ge=30, le=3600)
    stagger_seconds: float = Field(default=Stagger.STEP_SECONDS, ge=0)
    max_stagger_seconds: float = Field(default=Stagger.MAX_SECONDS, ge=0)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Write JSON lines log file")

    # Notification Settings
    telegram_enabled: bool = Field(default=False, description="Enable Telegram reports")
    telegram_bot_token: Optional[SecretStr] = Field(default=None, description="Telegram bot token")
    telegram_chat_id: Optional[str] = Field(default=None, description="Telegram chat ID")

    model_config = SettingsConfigDict(
        env_file=".env.test",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and normalise the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("BASE_URL must start with http:// or https://")
        return v.rstrip("/") + "/"

    @field_validator("dopamint_email", "login_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email format."""
        if v and "@" not in v:
            raise ValueError("Invalid email format")
        return v.strip()

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["dev", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f'ENV must be one of: {", ".join(allowed)}')
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of: {", ".join(allowed)}')
        return v_upper

    @field_validator("wallet_seed_phrase")
    @classmethod
    def validate_seed_phrase(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        """Recovery phrases are 12 to 24 words, in steps of three."""
        if v is None or not v.get_secret_value().strip():
            return None
        words = v.get_secret_value().split()
        if len(words) not in SEED_PHRASE_LENGTHS:
            raise ValueError(f"WALLET_SEED_PHRASE must have 12-24 words, got {len(words)}")
        return SecretStr(" ".join(words))

    @model_validator(mode="after")
    def validate_wallet_password(self) -> "E2ESettings":
        """Importing a seed phrase needs a wallet password the extension accepts."""
        if self.wallet_seed_phrase and len(self.wallet_password.get_secret_value()) < 8:
            raise ValueError("WALLET_SEED_PHRASE requires a WALLET_PASSWORD of at least 8 characters")
        return self

    @model_validator(mode="after")
    def validate_telegram(self) -> "E2ESettings":
        """Telegram reporting needs both a token and a chat."""
        if self.telegram_enabled and (not self.telegram_bot_token or not self.telegram_chat_id):
            raise ValueError("TELEGRAM_ENABLED requires TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID")
        return self

    def url(self, path: str = "") -> str:
        """
        Build an absolute marketplace URL.

        Args:
            path: Path relative to the base URL

        Returns:
            Absolute URL
        """
        return self.base_url + path.lstrip("/")

    def has_cognito_credentials(self) -> bool:
        """Check whether the Cognito gate can be passed."""
        return bool(self.dopamint_email and self.dopamint_password.get_secret_value())

    def has_wallet_seed(self) -> bool:
        """Check whether a new wallet profile can be set up."""
        return self.wallet_seed_phrase is not None

    def is_production(self) -> bool:
        """
        Check if the run targets production.

        Returns:
            True if production environment
        """
        return self.env == "production"


# Singleton instance
_settings: Optional[E2ESettings] = None


def get_settings() -> E2ESettings:
    """
    Get run settings singleton.

    Returns:
        E2ESettings instance

    Raises:
        ValidationError: If settings are invalid
    """
    global _settings
    if _settings is None:
        _settings = E2ESettings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
