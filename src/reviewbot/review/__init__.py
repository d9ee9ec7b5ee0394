"""Review decision subsystem for Reviewbot.

This module implements the marker-encoded attempt counter, the eligibility
filter, the commit precheck, the attempt tracker, and comment composition.
Everything except the tracker is pure logic with no I/O.
"""

from reviewbot.review.eligibility import EligibilityResult, SkipReason, check_eligibility
from reviewbot.review.markers import (
    BUMP_TRANSITIONS,
    MAX_ATTEMPTS,
    AttemptState,
    MarkerAction,
    MarkerOp,
    bump,
    decode,
    decode_markers,
    encode,
)
from reviewbot.review.precheck import analyze
from reviewbot.review.tracker import AttemptTracker, Decision, Verdict

__all__ = [
    "AttemptState",
    "AttemptTracker",
    "BUMP_TRANSITIONS",
    "Decision",
    "EligibilityResult",
    "MAX_ATTEMPTS",
    "MarkerAction",
    "MarkerOp",
    "SkipReason",
    "Verdict",
    "analyze",
    "bump",
    "check_eligibility",
    "decode",
    "decode_markers",
    "encode",
]
