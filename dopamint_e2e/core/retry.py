"""Retry strategies for workflow-level operations."""

import logging as stdlib_logging
from typing import Tuple, Type, Union

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_none,
    wait_random,
)

from telegram.error import NetworkError

from dopamint_e2e.constants import Retries
from dopamint_e2e.core.exceptions import LoginError, WalletError

# Stdlib logger needed for tenacity's before_sleep_log
_stdlib_logger = stdlib_logging.getLogger(__name__)


def _make_retry(
    attempts: int,
    wait_strategy: object,
    exception_types: Union[Type[BaseException], Tuple[Type[BaseException], ...]],
) -> object:
    """
    Factory for creating retry decorators with consistent configuration.

    Args:
        attempts: Maximum number of attempts
        wait_strategy: Tenacity wait strategy
        exception_types: Exception type(s) to retry on

    Returns:
        Configured retry decorator
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_strategy,
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(_stdlib_logger, stdlib_logging.WARNING),
        reraise=True,
    )


def get_wallet_login_retry(attempts: int = Retries.MAX_WALLET_LOGIN, backoff: bool = True):
    """
    Get retry strategy for a whole wallet-login attempt.

    Args:
        attempts: Maximum number of attempts
        backoff: Wait with exponential backoff between attempts

    Returns:
        Retry decorator configured for login and wallet errors
    """
    wait_strategy = (
        wait_exponential(
            multiplier=Retries.BACKOFF_MULTIPLIER,
            min=Retries.BACKOFF_MIN_SECONDS,
            max=Retries.BACKOFF_MAX_SECONDS,
        )
        + wait_random(0, 2)
        if backoff
        else wait_none()
    )
    return _make_retry(
        attempts=attempts,
        wait_strategy=wait_strategy,
        exception_types=(LoginError, WalletError),
    )


# python-telegram-bot wraps httpx failures in NetworkError (TimedOut is one)
TRANSIENT_TELEGRAM_ERRORS = (ConnectionError, TimeoutError, OSError, NetworkError)


def get_telegram_retry(backoff: bool = True):
    """Get retry strategy for Telegram API operations."""
    return _make_retry(
        attempts=3,
        wait_strategy=(
            wait_exponential(multiplier=1, min=1, max=8) + wait_random(0, 1) if backoff else wait_none()
        ),
        exception_types=TRANSIENT_TELEGRAM_ERRORS,
    )
