"""Interfaces of the remote collaborators used by the review pipeline.

The orchestrator and the attempt tracker depend only on these protocols, so
they can run against the GitHub and Gemini clients in production and against
in-memory fakes in tests.
"""

from __future__ import annotations

from typing import Protocol

from reviewbot.models import Candidate, Item, Marker, MarkerKind, PublishedComment


class ReviewPlatform(Protocol):
    """Code-review platform holding pull requests, markers and comments.

    Every method raises ``TransientRemoteError`` (or a subclass) on failure.
    """

    async def list_open_items(self, limit: int) -> list[Candidate]:
        """List the newest open pull requests, most recently created first."""
        ...

    async def get_item(self, number: int) -> Item:
        """Fetch a pull request including its commits."""
        ...

    async def list_markers(self, number: int) -> list[Marker]:
        """List the attempt markers on a pull request, from any owner."""
        ...

    async def create_marker(self, number: int, kind: MarkerKind) -> int:
        """Create a marker and return its identifier."""
        ...

    async def delete_marker(self, number: int, marker_id: int) -> None:
        """Delete a marker by identifier."""
        ...

    async def create_comment(self, number: int, body: str) -> PublishedComment:
        """Publish a comment on a pull request."""
        ...

    async def get_identity(self) -> str:
        """Return the login of the authenticated account."""
        ...


class ReviewGenerator(Protocol):
    """Stateless text-generation service."""

    async def generate(self, prompt: str) -> str:
        """Generate review text for a prompt in a single request."""
        ...
