"""Stagger parallel worker start times to stay under provider rate limits."""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from dopamint_e2e.constants import Stagger


def start_delay_seconds(
    worker_index: int,
    offset: int = 0,
    step_seconds: float = Stagger.STEP_SECONDS,
    max_seconds: float = Stagger.MAX_SECONDS,
) -> float:
    """
    Compute one worker's start delay.

    Args:
        worker_index: Zero-based worker index
        offset: Workflow start slot (see ``WorkflowOffsets``)
        step_seconds: Delay per slot
        max_seconds: Upper bound

    Returns:
        Delay in seconds

    Raises:
        ValueError: If the index or offset is negative
    """
    if worker_index < 0 or offset < 0:
        raise ValueError("worker_index and offset must be >= 0")
    return min((worker_index + offset) * step_seconds, max_seconds)


async def stagger_start(
    worker_index: int,
    offset: int = 0,
    step_seconds: float = Stagger.STEP_SECONDS,
    max_seconds: float = Stagger.MAX_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> float:
    """Wait once before a worker starts; returns the delay used."""
    delay = start_delay_seconds(worker_index, offset, step_seconds, max_seconds)
    if delay > 0:
        logger.info(f"⏳ Worker {worker_index}: staggering start by {delay:.1f}s")
        await sleep(delay)
    return delay
