"""One-time code boundary: provider protocol, code extraction and polling."""

import asyncio
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Pattern, Protocol

from loguru import logger

from dopamint_e2e.constants import Intervals, Timeouts
from dopamint_e2e.core.exceptions import OTPTimeoutError
from dopamint_e2e.resilience.polling import PollSpec, poll_until

# Mail search window opened this far before the request, for clock skew
REQUEST_SKEW = timedelta(seconds=60)


class OTPProvider(Protocol):
    """Supplies the code (or the mail text carrying it) sent to ``email`` after ``requested_after``."""

    async def fetch_code(self, email: str, requested_after: datetime) -> Optional[str]: ...


class OTPPatternMatcher:
    """Regex-based OTP code extractor for login mails."""

    # Order matters (most specific first)
    DEFAULT_PATTERNS: List[str] = [
        r"verification\s+code[:\s]+(\d{6})",  # verification code: 123456
        r"login\s+code[:\s]+(\d{6})",
        r"OTP[:\s]+(\d{6})",
        r"code[:\s]+(\d{6})",
        r"\b(\d{6})\b",  # 6-digit code (fallback)
    ]

    def __init__(self, custom_patterns: Optional[List[str]] = None):
        """
        Initialize OTP pattern matcher.

        Args:
            custom_patterns: Optional list of custom regex patterns
        """
        patterns = custom_patterns or self.DEFAULT_PATTERNS
        self._patterns: List[Pattern] = [re.compile(p, re.IGNORECASE | re.DOTALL) for p in patterns]

    def extract_otp(self, *texts: Optional[str]) -> Optional[str]:
        """
        Extract the code from the first text (body, html, subject) that has one.

        Returns:
            Extracted OTP code or None
        """
        for text in texts:
            if not text:
                continue
            for pattern in self._patterns:
                match = pattern.search(text)
                if match:
                    otp = match.group(1)
                    logger.debug(f"OTP extracted: {otp[:2]}****")
                    return otp
        return None


async def wait_for_otp(
    provider: OTPProvider,
    email: str,
    requested_after: Optional[datetime] = None,
    timeout_ms: int = Timeouts.OTP,
    interval_ms: int = Intervals.OTP,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    matcher: Optional[OTPPatternMatcher] = None,
) -> str:
    """
    Poll the provider until a code arrives.

    Args:
        provider: Mailbox (or other) code source
        email: Address the code was sent to
        requested_after: When the code was requested (defaults to now)
        timeout_ms: Overall budget
        interval_ms: Delay between fetches
        matcher: Extracts the code from what the provider returns

    Returns:
        The one-time code

    Raises:
        OTPTimeoutError: If no code arrived in time
    """
    since = (requested_after or datetime.now(timezone.utc)) - REQUEST_SKEW
    matcher = matcher or OTPPatternMatcher()
    found: List[str] = []

    async def code_arrived() -> bool:
        code = matcher.extract_otp(await provider.fetch_code(email, since))
        if code:
            found.append(code)
            return True
        return False

    logger.info(f"📧 Waiting for OTP sent to {email} (max {timeout_ms / 1000:.0f}s)")
    outcome = await poll_until(
        PollSpec(code_arrived, interval_ms=interval_ms, timeout_ms=timeout_ms, description="OTP"),
        clock=clock,
        sleep=sleep,
    )
    if not outcome:
        raise OTPTimeoutError("OTP email", outcome.elapsed_ms, timeout_ms)

    logger.info(f"✅ OTP received after {outcome.elapsed_ms / 1000:.1f}s")
    return found[-1]
