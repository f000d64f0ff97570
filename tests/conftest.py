"""Pytest configuration and common fixtures."""

import sys
import warnings
from pathlib import Path

from dotenv import load_dotenv

# Try to load test-specific environment file if it exists
test_env_file = Path(__file__).parent / ".env.test"
if test_env_file.exists():
    load_dotenv(test_env_file)

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from dopamint_e2e.core.settings import E2ESettings, reset_settings
from dopamint_e2e.selector.catalog import SelectorCatalog

# Variables that would make settings depend on the developer's shell
_SETTINGS_ENV = [
    "BASE_URL",
    "DOPAMINT_EMAIL",
    "DOPAMINT_PASSWORD",
    "LOGIN_EMAIL",
    "HEADLESS",
    "TELEGRAM_ENABLED",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "WORKFLOW_TIMEOUT_SECONDS",
    "CHECK_TIMEOUT_MS",
    "SELECTORS_FILE",
    "STORAGE_STATE_PATH",
    "FRESH_PROFILE",
    "WALLET_EXTENSION_PATH",
    "WALLET_SEED_PHRASE",
    "WALLET_PASSWORD",
    "WALLET_PRIVATE_KEY",
]


def pytest_configure(config):
    """Configure pytest environment before tests run."""
    warnings.filterwarnings("ignore", message="coroutine.*was never awaited")


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Isolate every test from the caller's environment and cached settings."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENV", "testing")
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path) -> E2ESettings:
    """Settings writing all artifacts under the test's temp dir."""
    return E2ESettings(
        _env_file=None,
        base_url="https://dev.dopamint.ai/",
        output_dir=tmp_path / "results",
        user_data_root=tmp_path / "profiles",
        check_timeout_ms=1000,
    )


@pytest.fixture(scope="session")
def catalog() -> SelectorCatalog:
    """The bundled selector catalog."""
    return SelectorCatalog()
