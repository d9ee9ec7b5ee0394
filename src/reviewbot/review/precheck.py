"""Commit history precheck.

Produces the advisories placed between the comment header and the generated
review. Pure function over the commit records of a pull request.
"""

from __future__ import annotations

from collections.abc import Sequence

from reviewbot.models import ChangeRecord

MULTIPLE_COMMITS_ADVISORY = (
    "**[Please squash the commits]** This pull request contains multiple commits. "
    "Please squash them into a single commit before merging."
)

EMPTY_MESSAGE_ADVISORY = (
    "**[Please fill in the commit message]** A commit message needs a short title, "
    "a blank line, then a description of the change."
)


def has_title_and_body(record: ChangeRecord) -> bool:
    """Whether a commit message separates a title from a body."""
    return "\n" in record.message.strip()


def analyze(records: Sequence[ChangeRecord], squash_advisory: bool = True) -> str:
    """Build the advisory text for a pull request's commits.

    Args:
        records: Commits of the pull request, in platform order.
        squash_advisory: Whether to advise squashing multiple commits.

    Returns:
        Advisories joined by a blank line, or an empty string.
    """
    advisories: list[str] = []
    if squash_advisory and len(records) > 1:
        advisories.append(MULTIPLE_COMMITS_ADVISORY)
    if any(not has_title_and_body(record) for record in records):
        advisories.append(EMPTY_MESSAGE_ADVISORY)
    return "\n\n".join(advisories)
