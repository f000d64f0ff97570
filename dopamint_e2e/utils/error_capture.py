"""Failure diagnostics: screenshot plus a JSON record per failed step."""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dopamint_e2e.resilience.driver import PageDriver

logger = logging.getLogger(__name__)


def _slug(text: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]+", "_", text).strip("_").lower()[:60] or "step"


class ErrorCapture:
    """Capture screenshots and context when a workflow step fails."""

    def __init__(self, output_dir: Union[str, Path] = "test-results/errors", cleanup_days: int = 7):
        """
        Initialize error capture.

        Args:
            output_dir: Directory for screenshots and JSON records
            cleanup_days: Days to keep files before cleanup
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.cleanup_days = cleanup_days

    async def screenshot(self, driver: PageDriver, name: str) -> Optional[str]:
        """
        Save a full-page screenshot.

        Returns:
            Path of the image, or None when the page could not be captured
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        path = self.output_dir / f"{stamp}_{_slug(name)}.png"
        try:
            await driver.screenshot(str(path))
        except Exception as e:
            logger.warning(f"Could not capture screenshot '{name}': {e}")
            return None
        logger.info(f"Captured screenshot: {path}")
        return str(path)

    async def capture(
        self,
        driver: PageDriver,
        error: BaseException,
        context: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Capture error with context.

        Capture problems are logged and recorded, never raised, so the
        original error is what reaches the caller.

        Args:
            driver: Page driver of the failing workflow
            error: Exception that occurred
            context: Additional context (step, elapsed, worker, ...)

        Returns:
            Error record with all captured data
        """
        timestamp = datetime.now(timezone.utc)
        error_id = f"{timestamp.strftime('%Y%m%d_%H%M%S_%f')}_{_slug(str(context.get('step', 'error')))}"

        error_record: Dict[str, Any] = {
            "id": error_id,
            "timestamp": timestamp.isoformat(),
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context,
            "screenshot": None,
        }

        screenshot_path = self.output_dir / f"{error_id}.png"
        try:
            await driver.screenshot(str(screenshot_path))
            error_record["screenshot"] = str(screenshot_path)
            logger.info(f"Captured failure screenshot: {screenshot_path}")
        except Exception as e:
            logger.warning(f"Could not capture failure screenshot: {e}")
            error_record["capture_error"] = str(e)

        try:
            error_record["url"] = driver.current_url()
        except Exception as e:
            error_record["url"] = None
            logger.debug(f"Could not read page URL: {e}")

        try:
            json_path = self.output_dir / f"{error_id}.json"
            json_path.write_text(json.dumps(error_record, indent=2, default=str), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write error record: {e}")

        return error_record

    def cleanup_old_errors(self) -> int:
        """Delete capture files older than ``cleanup_days``; return how many went."""
        cutoff_time = datetime.now(timezone.utc) - timedelta(days=self.cleanup_days)

        deleted_count = 0
        for file_path in self.output_dir.glob("*"):
            if file_path.is_file():
                file_mtime = datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
                if file_mtime < cutoff_time:
                    file_path.unlink()
                    deleted_count += 1

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} old error files (>{self.cleanup_days} days)")
        return deleted_count

