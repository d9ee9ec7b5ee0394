"""Attempt tracking backed by markers on the pull request.

The tracker reads the bot's markers on a pull request, refuses further work
once attempts are exhausted, and otherwise bumps the counter on the platform
*before* the caller makes the generation call. A process killed after the
bump therefore leaves the advanced state behind, and the next cycle either
retries or gives up. After a review is published the caller clears the
markers, returning the item to UNTRIED.
"""

from __future__ import annotations

from enum import Enum

import structlog
from pydantic import BaseModel

from reviewbot.integrations.base import ReviewPlatform
from reviewbot.models import Marker
from reviewbot.review.markers import (
    AttemptState,
    MarkerAction,
    bump,
    decode_markers,
)

logger = structlog.get_logger(__name__)


class Verdict(str, Enum):
    """Whether the caller may go on to generate a review."""

    PROCEED = "proceed"
    SKIP = "skip"


class Decision(BaseModel):
    """Result of evaluating an item's attempt counter.

    Attributes:
        verdict: PROCEED when an attempt was booked, SKIP when exhausted.
        state_before: State observed on the platform.
        state_after: State after the bump (equal to state_before on SKIP).
    """

    verdict: Verdict
    state_before: AttemptState
    state_after: AttemptState


class AttemptTracker:
    """Reads, bumps and clears the attempt markers of pull requests.

    Attributes:
        platform: Platform client used for marker calls.
        bot_login: Only markers created by this login are trusted.
    """

    def __init__(self, platform: ReviewPlatform, bot_login: str) -> None:
        self.platform = platform
        self.bot_login = bot_login
        self._logger = logger.bind(component="AttemptTracker")

    async def _trusted_markers(self, item_number: int) -> list[Marker]:
        markers = await self.platform.list_markers(item_number)
        return [m for m in markers if m.owner == self.bot_login]

    async def read_state(self, item_number: int) -> AttemptState:
        """Return the attempt state currently recorded on a pull request."""
        return decode_markers(await self._trusted_markers(item_number))

    async def evaluate(self, item_number: int) -> Decision:
        """Book an attempt on a pull request, unless attempts are exhausted.

        The exhausted check happens before any marker or generation call.
        Marker calls are issued in transition order; if one fails the error
        propagates and whatever already landed stays on the platform.

        Args:
            item_number: Pull request number.

        Returns:
            Decision with the observed and resulting states.

        Raises:
            TransientRemoteError: If a marker call fails.
        """
        markers = await self._trusted_markers(item_number)
        state = decode_markers(markers)

        if state.is_terminal:
            self._logger.info(
                "attempts_exhausted",
                item_number=item_number,
                state=state.name,
            )
            return Decision(verdict=Verdict.SKIP, state_before=state, state_after=state)

        next_state, ops = bump(state, item_number)
        by_kind = {m.kind: m for m in markers}

        for op in ops:
            if op.action == MarkerAction.CREATE:
                await self.platform.create_marker(item_number, op.kind)
            else:
                await self.platform.delete_marker(item_number, by_kind[op.kind].marker_id)

        self._logger.info(
            "attempt_booked",
            item_number=item_number,
            from_state=state.name,
            to_state=next_state.name,
            attempt=int(next_state),
        )
        return Decision(verdict=Verdict.PROCEED, state_before=state, state_after=next_state)

    async def clear(self, item_number: int) -> int:
        """Delete every trusted marker on a pull request.

        Args:
            item_number: Pull request number.

        Returns:
            Number of markers deleted.

        Raises:
            TransientRemoteError: If listing or deleting fails.
        """
        markers = await self._trusted_markers(item_number)
        for marker in markers:
            await self.platform.delete_marker(item_number, marker.marker_id)

        self._logger.info("markers_cleared", item_number=item_number, count=len(markers))
        return len(markers)
