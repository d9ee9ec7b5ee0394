"""Shared pytest fixtures for Reviewbot tests.

Provides in-memory fakes of the review platform and the text-generation
service so the review pipeline can be exercised without any network access.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterator

import pytest
import structlog

from reviewbot.config import ReviewConfig
from reviewbot.errors import GitHubAPIError, TransientRemoteError
from reviewbot.logging import set_correlation_id
from reviewbot.models import (
    Candidate,
    ChangeRecord,
    Item,
    ItemState,
    Marker,
    MarkerKind,
    PublishedComment,
)
from reviewbot.orchestrator.pacing import NoDelayPacer
from reviewbot.orchestrator.poller import ReviewOrchestrator
from reviewbot.review.markers import AttemptState, decode_markers
from reviewbot.review.tracker import AttemptTracker

BOT_LOGIN = "nuttxpr"
HEADER = "[**Experimental Bot**]"


class FakePlatform:
    """In-memory review platform.

    Comments published through ``create_comment`` are counted by later
    ``get_item`` calls, like on the real platform. ``fail_on`` maps an
    operation name to the exception raised the next time it is called.
    """

    def __init__(self, identity: str = BOT_LOGIN) -> None:
        self.identity = identity
        self.items: dict[int, Item] = {}
        self.markers: dict[int, list[Marker]] = defaultdict(list)
        self.comments: dict[int, list[PublishedComment]] = defaultdict(list)
        self.calls: list[tuple[str, int | None]] = []
        self.fail_on: dict[str, Exception] = {}
        self._next_id = 1000

    def add_item(self, item: Item) -> Item:
        self.items[item.number] = item
        return item

    def add_marker(self, number: int, kind: MarkerKind, owner: str = BOT_LOGIN) -> Marker:
        marker = Marker(marker_id=self._new_id(), kind=kind, owner=owner)
        self.markers[number].append(marker)
        return marker

    def state(self, number: int) -> AttemptState:
        return decode_markers(m for m in self.markers[number] if m.owner == self.identity)

    def marker_calls(self) -> list[tuple[str, int | None]]:
        return [c for c in self.calls if c[0] in ("create_marker", "delete_marker")]

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _record(self, operation: str, number: int | None = None) -> None:
        self.calls.append((operation, number))
        error = self.fail_on.pop(operation, None)
        if error is not None:
            raise error

    async def list_open_items(self, limit: int) -> list[Candidate]:
        self._record("list_open_items")
        open_numbers = sorted(
            (n for n, item in self.items.items() if item.state == ItemState.OPEN),
            reverse=True,
        )
        return [Candidate(number=n, title=self.items[n].title) for n in open_numbers[:limit]]

    async def get_item(self, number: int) -> Item:
        self._record("get_item", number)
        if number not in self.items:
            raise GitHubAPIError("get_item", "Not Found", 404)
        item = self.items[number]
        return item.model_copy(
            update={"comment_count": item.comment_count + len(self.comments[number])}
        )

    async def list_markers(self, number: int) -> list[Marker]:
        self._record("list_markers", number)
        return list(self.markers[number])

    async def create_marker(self, number: int, kind: MarkerKind) -> int:
        self._record("create_marker", number)
        return self.add_marker(number, kind, owner=self.identity).marker_id

    async def delete_marker(self, number: int, marker_id: int) -> None:
        self._record("delete_marker", number)
        remaining = [m for m in self.markers[number] if m.marker_id != marker_id]
        if len(remaining) == len(self.markers[number]):
            raise GitHubAPIError("delete_marker", "Not Found", 404)
        self.markers[number] = remaining

    async def create_comment(self, number: int, body: str) -> PublishedComment:
        self._record("create_comment", number)
        comment = PublishedComment(comment_id=self._new_id(), body=body)
        self.comments[number].append(comment)
        return comment

    async def get_identity(self) -> str:
        self._record("get_identity")
        return self.identity


class FakeGenerator:
    """Returns a fixed review text, or raises ``error`` when set."""

    def __init__(self, text: str = "Looks fine.") -> None:
        self.text = text
        self.error: TransientRemoteError | None = None
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


def make_item(
    number: int = 42,
    state: ItemState = ItemState.OPEN,
    comment_count: int = 0,
    size_label: str | None = "Size: M",
    body: str | None = "## Summary\nfoo",
    messages: tuple[str, ...] = ("Add feature\n\nDescribe the feature.",),
) -> Item:
    """Build an Item with sensible defaults for tests."""
    return Item(
        number=number,
        state=state,
        comment_count=comment_count,
        size_label=size_label,
        body=body,
        change_records=[ChangeRecord(message=m) for m in messages],
        title=f"PR {number}",
    )


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Reset logging configuration and context around each test."""
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def platform() -> FakePlatform:
    """Create an empty in-memory platform."""
    return FakePlatform()


@pytest.fixture
def generator() -> FakeGenerator:
    """Create a generator returning "Looks fine."."""
    return FakeGenerator()


@pytest.fixture
def review_config() -> ReviewConfig:
    """Review settings with a short, predictable header."""
    return ReviewConfig(header=HEADER)


@pytest.fixture
def pacer() -> NoDelayPacer:
    """Pacer that never sleeps."""
    return NoDelayPacer()


@pytest.fixture
def tracker(platform: FakePlatform) -> AttemptTracker:
    """Attempt tracker bound to the fake platform."""
    return AttemptTracker(platform, BOT_LOGIN)


@pytest.fixture
def orchestrator(
    platform: FakePlatform,
    generator: FakeGenerator,
    tracker: AttemptTracker,
    review_config: ReviewConfig,
    pacer: NoDelayPacer,
) -> ReviewOrchestrator:
    """Orchestrator wired to the fakes with fixed instructions."""
    return ReviewOrchestrator(
        platform=platform,
        generator=generator,
        tracker=tracker,
        config=review_config,
        pacer=pacer,
        repository="apache/nuttx",
        instructions="INSTRUCTIONS",
    )
