"""Timing-related constants (timeouts, intervals, delays)."""

from typing import Final


class Timeouts:
    """Timeout values in MILLISECONDS unless noted otherwise."""

    # Single visibility check per locator strategy
    CHECK: Final[int] = 5_000
    CHECK_QUICK: Final[int] = 2_000
    CHECK_INSTANT: Final[int] = 1_000

    # Playwright navigation
    PAGE_LOAD: Final[int] = 30_000
    NAVIGATION: Final[int] = 30_000
    MARKETPLACE_VISIBLE: Final[int] = 15_000

    # Wallet login
    WALLET_POPUP: Final[int] = 10_000
    WALLET_ATTEMPT: Final[int] = 10_000
    WALLET_BUTTON: Final[int] = 2_500
    WALLET_IMPORT: Final[int] = 30_000
    LOGIN_HIDDEN_QUICK: Final[int] = 2_500
    LOGIN_HIDDEN_FULL: Final[int] = 10_000

    # Asynchronous backend work
    IMAGE_GENERATION: Final[int] = 240_000
    PUBLISH_SUCCESS: Final[int] = 120_000
    MINT_SUCCESS: Final[int] = 240_000
    GALLERY_UPDATE: Final[int] = 60_000
    SOLD_TOAST: Final[int] = 60_000
    OTP: Final[int] = 60_000
    SEARCH_RESULTS: Final[int] = 20_000

    # Whole-workflow budget (seconds)
    WORKFLOW_SECONDS: Final[int] = 600
    LOGIN_WORKFLOW_SECONDS: Final[int] = 180


class Intervals:
    """Polling intervals in MILLISECONDS."""

    DEFAULT: Final[int] = 1_000
    LOGIN_HIDDEN: Final[int] = 250
    WALLET_POPUP: Final[int] = 500
    IMAGE_GENERATION: Final[int] = 5_000
    PUBLISH_SUCCESS: Final[int] = 3_000
    MINT_SUCCESS: Final[int] = 5_000
    GALLERY_UPDATE: Final[int] = 3_000
    SOLD_TOAST: Final[int] = 2_000
    OTP: Final[int] = 3_000
    SEARCH_RESULTS: Final[int] = 2_000


class Delays:
    """UI settle delays in MILLISECONDS."""

    AFTER_CLICK: Final[int] = 500
    AFTER_NAVIGATION: Final[int] = 2_000
    AFTER_DISMISS: Final[int] = 300
    AFTER_UPLOAD: Final[int] = 1_500
    AFTER_HOVER: Final[int] = 1_000
    DROPDOWN_OPEN: Final[int] = 1_000
    GALLERY_SCROLL: Final[int] = 1_500
    SEARCH_RESULTS: Final[int] = 3_000
