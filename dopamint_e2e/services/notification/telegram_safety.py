"""Decorator for Telegram calls that must never break a workflow report."""

import functools
from typing import Any, Callable

from loguru import logger
from telegram.error import BadRequest

from dopamint_e2e.core.retry import TRANSIENT_TELEGRAM_ERRORS


def safe_telegram_call(operation_name: str) -> Callable:
    """
    Async decorator that logs Telegram API rejections and returns False instead.

    Network-level errors (``TRANSIENT_TELEGRAM_ERRORS``) pass through so a
    retry decorator wrapped around this one can try again.

    Args:
        operation_name: Human-readable label used in log messages.

    Usage::

        @safe_telegram_call("send message")
        async def send(self, ...) -> bool:
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> bool:
            try:
                return await func(*args, **kwargs)
            except BadRequest as e:
                # NetworkError subclass, never transient
                logger.error(f"Telegram {operation_name} rejected: {e}")
                return False
            except TRANSIENT_TELEGRAM_ERRORS:
                raise
            except Exception as e:
                logger.error(f"Telegram {operation_name} failed: {e}")
                return False

        return wrapper

    return decorator
