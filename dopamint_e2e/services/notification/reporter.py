"""Workflow outcome reports delivered to Telegram."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from telegram import Bot

from dopamint_e2e.core.retry import get_telegram_retry
from dopamint_e2e.core.settings import E2ESettings
from dopamint_e2e.services.notification.telegram_safety import safe_telegram_call

# Telegram API limits
MESSAGE_LIMIT = 4096
CAPTION_LIMIT = 1024

# Screenshots attached per report, newest first
PASSED_SCREENSHOTS = 2
FAILED_SCREENSHOTS = 3

MARKDOWN_SPECIALS = ("*", "_", "`", "[")


def escape_markdown(text: str) -> str:
    """Escape the characters legacy Telegram Markdown treats as markup."""
    for char in MARKDOWN_SPECIALS:
        text = text.replace(char, "\\" + char)
    return text


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    """
    Cut ``text`` into pieces of at most ``limit`` characters.

    Cuts land on the last newline before the limit, else the last space,
    else mid-word; the character cut on is dropped.
    """
    pieces: List[str] = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut == -1:
            cut = text.rfind(" ", 0, limit)
        if cut == -1:
            pieces.append(text[:limit])
            text = text[limit:]
        else:
            pieces.append(text[:cut])
            text = text[cut + 1 :]
    pieces.append(text)
    return pieces


def format_duration(seconds: float) -> str:
    """
    Human duration for reports.

    >>> format_duration(125.4)
    '2m 5s'
    """
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs}s" if minutes else f"{secs}s"


@dataclass
class WorkflowReport:
    """Pass/fail outcome of one workflow run, plus its artifacts."""

    name: str
    passed: bool
    duration_seconds: float
    worker_index: int = 0
    error: Optional[str] = None
    failed_step: Optional[str] = None
    artifacts: List[str] = field(default_factory=list)
    details: Dict[str, str] = field(default_factory=dict)
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def format_message(self) -> str:
        """Render the report as a Telegram Markdown message."""
        status = "✅ PASSED" if self.passed else "❌ FAILED"
        lines = [
            f"*{status}* - {escape_markdown(self.name)}",
            f"Worker: {self.worker_index}",
            f"Duration: {format_duration(self.duration_seconds)}",
            f"Finished: {self.finished_at.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        ]
        if self.failed_step:
            lines.append(f"Step: {escape_markdown(self.failed_step)}")
        if self.error:
            lines.append(f"Error: {escape_markdown(self.error)}")
        for key, value in self.details.items():
            lines.append(f"{escape_markdown(key)}: {escape_markdown(value)}")
        return "\n".join(lines)

    def screenshots(self) -> List[str]:
        """Newest png artifacts worth attaching: a few on pass, a few more on failure."""
        limit = PASSED_SCREENSHOTS if self.passed else FAILED_SCREENSHOTS
        pngs = [a for a in self.artifacts if a.endswith(".png")]
        return list(reversed(pngs))[:limit]


class TelegramNotifier:
    """Send workflow reports; never raises into the caller."""

    def __init__(
        self,
        settings: E2ESettings,
        bot: Optional[Any] = None,
        retry_backoff: bool = True,
    ):
        """
        Initialize notifier.

        Args:
            settings: Run settings (Telegram token and chat)
            bot: Pre-built ``telegram.Bot`` (built from settings when omitted)
            retry_backoff: Back off between retries of network errors
        """
        self.enabled = settings.telegram_enabled
        self.chat_id = settings.telegram_chat_id or ""
        self._bot = bot
        if self.enabled and self._bot is None and settings.telegram_bot_token:
            self._bot = Bot(token=settings.telegram_bot_token.get_secret_value())

        retry = get_telegram_retry(backoff=retry_backoff)
        self.send_text = retry(safe_telegram_call("send message")(self._send_text))
        self.send_photo = retry(safe_telegram_call("send photo")(self._send_photo))

    async def _send_text(self, text: str) -> bool:
        await self._bot.send_message(chat_id=self.chat_id, text=text, parse_mode="Markdown")
        return True

    async def _send_photo(self, path: str, caption: str = "") -> bool:
        photo = Path(path)
        if not photo.exists():
            logger.warning(f"Screenshot not found, skipping: {path}")
            return False
        if len(caption) > CAPTION_LIMIT:
            caption = caption[: CAPTION_LIMIT - 3] + "..."

        with open(photo, "rb") as handle:
            await self._bot.send_photo(
                chat_id=self.chat_id,
                photo=handle,
                caption=caption or None,
                parse_mode="Markdown" if caption else None,
            )
        return True

    async def send_report(self, report: WorkflowReport) -> bool:
        """
        Send a report and its screenshots.

        Returns:
            True if every message piece was delivered
        """
        if not self.enabled or self._bot is None:
            logger.debug(f"Telegram disabled, skipping report for {report.name}")
            return False

        try:
            delivered = True
            for piece in split_message(report.format_message()):
                delivered = await self.send_text(piece) and delivered
            for path in report.screenshots():
                caption = escape_markdown(f"{report.name}: {Path(path).stem}")
                await self.send_photo(path, caption=caption)
        except Exception as e:
            logger.error(f"Failed to send Telegram report for {report.name}: {e}")
            return False

        if delivered:
            logger.info(f"📨 Telegram report sent for {report.name}")
        return delivered
