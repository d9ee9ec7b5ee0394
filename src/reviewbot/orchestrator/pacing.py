"""Pacing policies between remote operations.

Fixed delays are the whole congestion-control strategy towards the platform:
a short wait after each pull request and a longer one after each cycle.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Pacer(Protocol):
    """Something the orchestrator awaits between units of work."""

    async def wait(self) -> None:
        """Block until the next unit of work may start."""
        ...


class FixedDelayPacer:
    """Sleeps for a fixed number of seconds on every wait.

    Attributes:
        seconds: Delay applied by each call to ``wait``.
    """

    def __init__(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Delay must be non-negative, got {seconds}")
        self.seconds = seconds

    async def wait(self) -> None:
        """Sleep for the configured delay."""
        if self.seconds > 0:
            logger.debug("pacing_wait", seconds=self.seconds)
            await asyncio.sleep(self.seconds)


class NoDelayPacer:
    """Returns immediately; counts how often it was asked to wait."""

    def __init__(self) -> None:
        self.waits = 0

    async def wait(self) -> None:
        """Record the wait and return."""
        self.waits += 1
