"""Attempt counter encoded in two marker flags.

Reviewbot keeps no local state between runs, so the number of review attempts
made on a pull request lives on the pull request itself, as the presence or
absence of two reactions placed by the bot account (the primary and the
secondary marker). The four combinations map onto four ordered states:

    UNTRIED     (absent,  absent)   zero attempts consumed
    TRIED_ONCE  (present, absent)   one attempt consumed
    TRIED_TWICE (absent,  present)  two attempts consumed
    EXHAUSTED   (present, present)  terminal

Each attempt bumps the state one step along a fixed walk before the
generation call is made:

    UNTRIED -> TRIED_ONCE -> TRIED_TWICE -> EXHAUSTED

so an item is attempted at most ``MAX_ATTEMPTS`` times. Bumping EXHAUSTED is
a contract violation: callers must treat it as terminal and skip the item.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum, IntEnum

from pydantic import BaseModel

from reviewbot.errors import ContractViolationError
from reviewbot.models import Marker, MarkerKind

MAX_ATTEMPTS = 3


class AttemptState(IntEnum):
    """Number of review attempts consumed on a pull request.

    States:
        UNTRIED: No markers present.
        TRIED_ONCE: Primary marker only.
        TRIED_TWICE: Secondary marker only.
        EXHAUSTED: Both markers present; no further attempts.
    """

    UNTRIED = 0
    TRIED_ONCE = 1
    TRIED_TWICE = 2
    EXHAUSTED = 3

    @property
    def is_terminal(self) -> bool:
        """Whether no further attempts may be made from this state."""
        return self is AttemptState.EXHAUSTED


class MarkerAction(str, Enum):
    """Operation applied to a marker on the remote platform."""

    CREATE = "create"
    DELETE = "delete"


class MarkerOp(BaseModel):
    """A single marker create or delete required by a transition.

    Attributes:
        action: Whether the marker is created or deleted.
        kind: Which marker the operation applies to.
    """

    model_config = {"frozen": True}

    action: MarkerAction
    kind: MarkerKind


# (primary present, secondary present) for every state
_ENCODING: dict[AttemptState, tuple[bool, bool]] = {
    AttemptState.UNTRIED: (False, False),
    AttemptState.TRIED_ONCE: (True, False),
    AttemptState.TRIED_TWICE: (False, True),
    AttemptState.EXHAUSTED: (True, True),
}

_DECODING: dict[tuple[bool, bool], AttemptState] = {
    flags: state for state, flags in _ENCODING.items()
}

# Bump walk. EXHAUSTED has no entry. Creates come before deletes so an
# interrupted step can only land on a later state, never an earlier one.
BUMP_TRANSITIONS: dict[AttemptState, tuple[AttemptState, tuple[MarkerOp, ...]]] = {
    AttemptState.UNTRIED: (
        AttemptState.TRIED_ONCE,
        (MarkerOp(action=MarkerAction.CREATE, kind=MarkerKind.PRIMARY),),
    ),
    AttemptState.TRIED_ONCE: (
        AttemptState.TRIED_TWICE,
        (
            MarkerOp(action=MarkerAction.CREATE, kind=MarkerKind.SECONDARY),
            MarkerOp(action=MarkerAction.DELETE, kind=MarkerKind.PRIMARY),
        ),
    ),
    AttemptState.TRIED_TWICE: (
        AttemptState.EXHAUSTED,
        (MarkerOp(action=MarkerAction.CREATE, kind=MarkerKind.PRIMARY),),
    ),
}


def encode(state: AttemptState) -> tuple[bool, bool]:
    """Return the (primary present, secondary present) flags for a state."""
    return _ENCODING[state]


def decode(primary: bool, secondary: bool) -> AttemptState:
    """Return the attempt state represented by the two marker flags."""
    return _DECODING[(primary, secondary)]


def decode_markers(markers: Iterable[Marker]) -> AttemptState:
    """Decode the attempt state from the markers present on an item.

    Args:
        markers: Trusted markers (already filtered by owner).

    Returns:
        The attempt state implied by which marker kinds are present.
    """
    kinds = {marker.kind for marker in markers}
    return decode(MarkerKind.PRIMARY in kinds, MarkerKind.SECONDARY in kinds)


def can_bump(state: AttemptState) -> bool:
    """Whether ``bump`` is defined for the given state."""
    return state in BUMP_TRANSITIONS


def bump(
    state: AttemptState, item_number: int | None = None
) -> tuple[AttemptState, tuple[MarkerOp, ...]]:
    """Advance the attempt counter by one step.

    Args:
        state: Currently observed attempt state.
        item_number: Pull request number, used only in the error message.

    Returns:
        The next state and the marker operations, in the order they must be
        applied, that move the remote flags from ``state`` to it.

    Raises:
        ContractViolationError: If ``state`` is EXHAUSTED.
    """
    if not can_bump(state):
        raise ContractViolationError(state, item_number)
    return BUMP_TRANSITIONS[state]
