"""Orchestrator subsystem for Reviewbot.

This module implements the poll cycle over open pull requests and the
pacing policies awaited between items and between cycles.
"""

from __future__ import annotations

from reviewbot.orchestrator.pacing import FixedDelayPacer, NoDelayPacer, Pacer
from reviewbot.orchestrator.poller import (
    CycleReport,
    ItemOutcome,
    ItemResult,
    ReviewOrchestrator,
)

__all__ = [
    "CycleReport",
    "FixedDelayPacer",
    "ItemOutcome",
    "ItemResult",
    "NoDelayPacer",
    "Pacer",
    "ReviewOrchestrator",
]
