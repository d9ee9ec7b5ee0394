"""Domain models shared by the review pipeline and the platform clients.

The remote platform owns every one of these objects; Reviewbot only reads
them through a point-in-time fetch and never caches them across cycles.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ItemState(str, Enum):
    """Lifecycle state of a pull request."""

    OPEN = "open"
    CLOSED = "closed"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> ItemState:
        """Map a platform state string onto an ItemState, defaulting to OTHER."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.OTHER


class MarkerKind(str, Enum):
    """Semantic tag of an attempt marker."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class ChangeRecord(BaseModel):
    """A single commit attached to a pull request.

    Attributes:
        message: Full commit message.
        sha: Commit hash, when the platform provides it.
    """

    message: str
    sha: str | None = None


class Candidate(BaseModel):
    """A pull request as returned by the open-items listing.

    Attributes:
        number: Pull request number.
        title: Pull request title.
        created_at: Creation timestamp, if reported.
    """

    number: int
    title: str = ""
    created_at: datetime | None = None


class Item(BaseModel):
    """A fully fetched pull request.

    Attributes:
        number: Pull request number.
        state: Lifecycle state.
        comment_count: Existing conversation plus review comments.
        size_label: Size classification label (e.g. "Size: M"), if any.
        body: Pull request description, if any.
        change_records: Commits in the order the platform returns them.
        title: Pull request title.
        author: Login of the pull request author.
        url: Web URL of the pull request.
    """

    number: int
    state: ItemState
    comment_count: int = Field(default=0, ge=0)
    size_label: str | None = None
    body: str | None = None
    change_records: list[ChangeRecord] = Field(default_factory=list)
    title: str = ""
    author: str | None = None
    url: str | None = None


class Marker(BaseModel):
    """An attempt marker (a reaction) attached to a pull request.

    Attributes:
        marker_id: Platform identifier, needed to delete the marker.
        kind: Which of the two counter flags this marker represents.
        owner: Login of the account that created the marker.
    """

    marker_id: int
    kind: MarkerKind
    owner: str


class PublishedComment(BaseModel):
    """A comment created on a pull request."""

    comment_id: int
    body: str
    url: str | None = None
