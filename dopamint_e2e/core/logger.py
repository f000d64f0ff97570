"""Logging with Loguru."""

import contextvars
import logging
import sys
from pathlib import Path
from types import FrameType
from typing import Any, Dict, Optional, Union

from loguru import logger

# Name of the workflow (and worker) owning the current task
workflow_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "workflow", default=None
)

__all__ = ["workflow_ctx", "setup_logging", "InterceptHandler"]


class InterceptHandler(logging.Handler):
    """Redirect standard logging records (tenacity, playwright) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level: Union[str, int] = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame: Optional[FrameType] = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _workflow_patcher(record: Dict[str, Any]) -> None:
    """
    Patch log records with the workflow name from context.

    Concurrent workers share one process, so every line carries the
    workflow that emitted it.
    """
    record["extra"]["workflow"] = workflow_ctx.get() or "-"


def setup_logging(
    level: str = "INFO",
    log_dir: Union[str, Path] = "logs",
    json_format: bool = False,
    diagnose: bool = False,
) -> None:
    """
    Setup Loguru logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for the rotating log files
        json_format: Serialize the file sink as JSON lines (for CI ingestion)
        diagnose: Include variable values in error tracebacks
    """
    logger.remove()
    logger.configure(patcher=_workflow_patcher)

    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Console handler - human readable
    console_format = (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>{extra[workflow]}</magenta> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    )
    logger.add(sys.stdout, format=console_format, level=level, colorize=True)

    if json_format:
        logger.add(
            logs_dir / "dopamint_e2e.jsonl",
            format="{message}",
            level=level,
            rotation="10 MB",
            retention="14 days",
            compression="zip",
            serialize=True,
        )
    else:
        text_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[workflow]} | "
            "{name}:{function}:{line} - {message}"
        )
        logger.add(
            logs_dir / "dopamint_e2e.log",
            format=text_format,
            level=level,
            rotation="10 MB",
            retention="14 days",
            compression="zip",
        )

    # Error file - separate error logs
    logger.add(
        logs_dir / "errors_{time:YYYY-MM-DD}.log",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[workflow]} | "
        "{name}:{function}:{line} - {message}",
        level="ERROR",
        rotation="10 MB",
        retention="30 days",
        backtrace=True,
        diagnose=diagnose,
    )

    # Intercept all standard logging
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.info(f"Logging initialized (level={level}, json={json_format})")
