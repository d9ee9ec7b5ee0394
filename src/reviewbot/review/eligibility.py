"""Eligibility filter for pull requests.

A pull request is reviewed only when every rule passes, evaluated in order:

1. it is open;
2. it has no comments yet (the durable guard against publishing twice);
3. it carries a size label;
4. that size label is not excluded.

The first failing rule names the skip reason.
"""

from __future__ import annotations

from collections.abc import Collection
from enum import Enum

from pydantic import BaseModel

from reviewbot.models import Item, ItemState


class SkipReason(str, Enum):
    """Why a pull request was not eligible for review."""

    NOT_OPEN = "not_open"
    HAS_COMMENTS = "has_comments"
    MISSING_SIZE_LABEL = "missing_size_label"
    EXCLUDED_SIZE = "excluded_size"


class EligibilityResult(BaseModel):
    """Outcome of the eligibility filter.

    Attributes:
        eligible: Whether the item should be reviewed this cycle.
        reason: The first failing rule, when not eligible.
    """

    eligible: bool
    reason: SkipReason | None = None


def check_eligibility(
    item: Item,
    excluded_size_labels: Collection[str] = ("Size: XS",),
) -> EligibilityResult:
    """Decide whether a pull request qualifies for an automated review.

    Args:
        item: Freshly fetched pull request.
        excluded_size_labels: Size labels that are never reviewed.

    Returns:
        EligibilityResult naming the first failing rule, if any.
    """
    if item.state != ItemState.OPEN:
        return EligibilityResult(eligible=False, reason=SkipReason.NOT_OPEN)
    if item.comment_count > 0:
        return EligibilityResult(eligible=False, reason=SkipReason.HAS_COMMENTS)
    if item.size_label is None:
        return EligibilityResult(eligible=False, reason=SkipReason.MISSING_SIZE_LABEL)
    if item.size_label in excluded_size_labels:
        return EligibilityResult(eligible=False, reason=SkipReason.EXCLUDED_SIZE)
    return EligibilityResult(eligible=True)
