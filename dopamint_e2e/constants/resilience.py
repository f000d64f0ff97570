"""Resilience-related constants (retries, dismissal, stagger offsets)."""

from typing import Final


class Retries:
    """Retry configuration."""

    MAX_WALLET_LOGIN: Final[int] = 3
    MAX_LOGIN_VERIFY_QUICK: Final[int] = 4
    MAX_LOGIN_VERIFY_FULL: Final[int] = 2
    BACKOFF_MULTIPLIER: Final[int] = 2
    BACKOFF_MIN_SECONDS: Final[int] = 2
    BACKOFF_MAX_SECONDS: Final[int] = 20


class DismissalConfig:
    """Popup dismissal configuration."""

    MAX_ROUNDS: Final[int] = 5
    OUTSIDE_CLICK: Final[tuple[int, int]] = (10, 10)
    SETTLE_MS: Final[int] = 500


class WorkflowOffsets:
    """Start slot of each workflow, multiplied by the stagger step."""

    LOGIN: Final[int] = 0
    CREATE: Final[int] = 1
    MINT: Final[int] = 2
    SELL: Final[int] = 3


class Stagger:
    """Worker start staggering in SECONDS."""

    STEP_SECONDS: Final[float] = 5.0
    MAX_SECONDS: Final[float] = 60.0
