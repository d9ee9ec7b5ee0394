"""Unit tests for the attempt tracker.

Tests cover:
- Bumping from each non-terminal state
- Skipping exhausted items without marker calls
- Ignoring markers placed by other accounts
- Clearing markers
- Partial failures leaving the landed marker state behind
"""

from __future__ import annotations

import pytest

from conftest import FakePlatform
from reviewbot.errors import GitHubAPIError
from reviewbot.models import MarkerKind
from reviewbot.review.markers import AttemptState
from reviewbot.review.tracker import AttemptTracker, Verdict


class TestEvaluate:
    """Test AttemptTracker.evaluate."""

    @pytest.mark.asyncio
    async def test_untried_books_first_attempt(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """UNTRIED creates the primary marker and proceeds."""
        decision = await tracker.evaluate(42)

        assert decision.verdict == Verdict.PROCEED
        assert decision.state_before == AttemptState.UNTRIED
        assert decision.state_after == AttemptState.TRIED_ONCE
        assert [m.kind for m in platform.markers[42]] == [MarkerKind.PRIMARY]

    @pytest.mark.asyncio
    async def test_tried_once_swaps_to_secondary(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """TRIED_ONCE creates secondary, then deletes primary."""
        platform.add_marker(42, MarkerKind.PRIMARY)

        decision = await tracker.evaluate(42)

        assert decision.state_after == AttemptState.TRIED_TWICE
        assert [m.kind for m in platform.markers[42]] == [MarkerKind.SECONDARY]
        assert platform.marker_calls() == [("create_marker", 42), ("delete_marker", 42)]

    @pytest.mark.asyncio
    async def test_tried_twice_reaches_exhausted(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """TRIED_TWICE adds primary; the last attempt still proceeds."""
        platform.add_marker(42, MarkerKind.SECONDARY)

        decision = await tracker.evaluate(42)

        assert decision.verdict == Verdict.PROCEED
        assert decision.state_after == AttemptState.EXHAUSTED
        assert platform.state(42) == AttemptState.EXHAUSTED

    @pytest.mark.asyncio
    async def test_exhausted_skips_without_marker_calls(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """EXHAUSTED returns SKIP and leaves the markers alone."""
        platform.add_marker(42, MarkerKind.PRIMARY)
        platform.add_marker(42, MarkerKind.SECONDARY)

        decision = await tracker.evaluate(42)

        assert decision.verdict == Verdict.SKIP
        assert decision.state_before == decision.state_after == AttemptState.EXHAUSTED
        assert platform.marker_calls() == []

    @pytest.mark.asyncio
    async def test_foreign_markers_are_ignored(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """Reactions from other accounts do not count as attempts."""
        platform.add_marker(42, MarkerKind.PRIMARY, owner="someone")
        platform.add_marker(42, MarkerKind.SECONDARY, owner="someone")

        assert await tracker.read_state(42) == AttemptState.UNTRIED
        decision = await tracker.evaluate(42)
        assert decision.state_after == AttemptState.TRIED_ONCE

    @pytest.mark.asyncio
    async def test_create_failure_propagates(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """A failed marker call aborts the evaluation."""
        platform.fail_on["create_marker"] = GitHubAPIError("create_marker", "boom", 502)

        with pytest.raises(GitHubAPIError):
            await tracker.evaluate(42)
        assert platform.state(42) == AttemptState.UNTRIED

    @pytest.mark.asyncio
    async def test_failed_secondary_create_keeps_tried_once(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """If the secondary create fails, the primary marker is still in place."""
        platform.add_marker(42, MarkerKind.PRIMARY)
        platform.fail_on["create_marker"] = GitHubAPIError("create_marker", "boom", 502)

        with pytest.raises(GitHubAPIError):
            await tracker.evaluate(42)
        assert platform.state(42) == AttemptState.TRIED_ONCE
        assert platform.marker_calls() == [("create_marker", 42)]

    @pytest.mark.asyncio
    async def test_failed_primary_delete_lands_on_exhausted(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """An interrupted swap leaves both markers, which can only cost attempts."""
        platform.add_marker(42, MarkerKind.PRIMARY)
        platform.fail_on["delete_marker"] = GitHubAPIError("delete_marker", "boom", 502)

        with pytest.raises(GitHubAPIError):
            await tracker.evaluate(42)
        assert platform.state(42) == AttemptState.EXHAUSTED
        assert (await tracker.evaluate(42)).verdict == Verdict.SKIP

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """A failed marker listing aborts before any mutation."""
        platform.fail_on["list_markers"] = GitHubAPIError("list_markers", "timeout")

        with pytest.raises(GitHubAPIError):
            await tracker.evaluate(42)
        assert platform.marker_calls() == []


class TestClear:
    """Test AttemptTracker.clear."""

    @pytest.mark.asyncio
    async def test_clear_removes_own_markers(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """Both own markers are deleted; foreign reactions stay."""
        platform.add_marker(42, MarkerKind.PRIMARY)
        platform.add_marker(42, MarkerKind.SECONDARY)
        foreign = platform.add_marker(42, MarkerKind.PRIMARY, owner="someone")

        deleted = await tracker.clear(42)

        assert deleted == 2
        assert platform.state(42) == AttemptState.UNTRIED
        assert platform.markers[42] == [foreign]

    @pytest.mark.asyncio
    async def test_clear_without_markers(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """Clearing an untouched item is a no-op."""
        assert await tracker.clear(42) == 0
        assert platform.marker_calls() == []

    @pytest.mark.asyncio
    async def test_bump_then_clear_returns_to_untried(
        self, platform: FakePlatform, tracker: AttemptTracker
    ) -> None:
        """A successful cycle ends back in UNTRIED."""
        await tracker.evaluate(42)
        await tracker.evaluate(42)
        await tracker.clear(42)
        assert await tracker.read_state(42) == AttemptState.UNTRIED

    @pytest.mark.asyncio
    async def test_tracker_uses_given_identity(self) -> None:
        """Markers are trusted by the login passed to the tracker."""
        platform = FakePlatform(identity="other-bot")
        platform.add_marker(7, MarkerKind.PRIMARY, owner="other-bot")

        assert await AttemptTracker(platform, "other-bot").read_state(7) == AttemptState.TRIED_ONCE
        assert await AttemptTracker(platform, "nuttxpr").read_state(7) == AttemptState.UNTRIED
