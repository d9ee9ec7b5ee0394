"""Poll cycle orchestration for Reviewbot.

Each cycle lists the newest open pull requests and handles them one at a
time, strictly in order:

1. Fetch the pull request and apply the eligibility filter.
2. Run the commit precheck.
3. Ask the attempt tracker to book an attempt (skip when exhausted).
4. Generate a review from the fixed instructions plus the description.
5. Publish header + advisories + review as a comment.
6. Clear the attempt markers.
7. Wait the per-item pacing delay.

Per-item failures are logged and recorded, never raised: the pull request is
simply revisited next cycle with whatever marker state actually landed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

import structlog
from pydantic import BaseModel, Field

from reviewbot.config import ReviewConfig
from reviewbot.errors import ContractViolationError, MissingFieldError, TransientRemoteError
from reviewbot.integrations.base import ReviewGenerator, ReviewPlatform
from reviewbot.logging import bind_item_context, clear_item_context, set_correlation_id
from reviewbot.orchestrator.pacing import Pacer
from reviewbot.review.eligibility import check_eligibility
from reviewbot.review.markers import AttemptState
from reviewbot.review.precheck import analyze
from reviewbot.review.prompts import build_prompt, compose_comment, load_instructions
from reviewbot.review.tracker import AttemptTracker, Verdict

logger = structlog.get_logger(__name__)


class ItemOutcome(str, Enum):
    """How a pull request was handled in one cycle."""

    PUBLISHED = "published"
    INELIGIBLE = "ineligible"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class ItemResult(BaseModel):
    """Per-item record of a poll cycle.

    Attributes:
        number: Pull request number.
        outcome: How the item was handled.
        reason: Skip reason or error description.
        attempt_state: Attempt state after the tracker ran, if it ran.
        comment_id: Identifier of the published comment, if any.
        markers_cleared: Whether markers were cleared after publishing.
    """

    number: int
    outcome: ItemOutcome
    reason: str | None = None
    attempt_state: AttemptState | None = None
    comment_id: int | None = None
    markers_cleared: bool = False


class CycleReport(BaseModel):
    """Summary of one poll cycle.

    Attributes:
        cycle_id: Correlation ID attached to the cycle's logs.
        started_at: When the cycle began.
        completed_at: When the cycle finished.
        candidates: Number of pull requests listed.
        results: Per-item results in processing order.
        listing_error: Error message when the candidate listing failed.
    """

    cycle_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    candidates: int = 0
    results: list[ItemResult] = Field(default_factory=list)
    listing_error: str | None = None

    def count(self, outcome: ItemOutcome) -> int:
        """Number of items with the given outcome."""
        return sum(1 for r in self.results if r.outcome == outcome)


class ReviewOrchestrator:
    """Drives poll cycles over one repository's open pull requests.

    Attributes:
        platform: Code-review platform client.
        generator: Text-generation client.
        tracker: Attempt tracker bound to the bot identity.
        config: Review selection and composition settings.
        pacer: Pacing policy awaited between items.
        repository: "owner/name", used for log context.
    """

    def __init__(
        self,
        platform: ReviewPlatform,
        generator: ReviewGenerator,
        tracker: AttemptTracker,
        config: ReviewConfig,
        pacer: Pacer,
        repository: str = "",
        instructions: str | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            platform: Platform client for listing, fetching and publishing.
            generator: Client producing review text.
            tracker: Attempt tracker sharing the same platform.
            config: Review settings (page size, exclusions, header).
            pacer: Pacing policy awaited between items.
            repository: Repository identity for log context.
            instructions: Review instructions. Loaded from
                ``config.instructions_file`` (or the built-in default) when None.
        """
        self.platform = platform
        self.generator = generator
        self.tracker = tracker
        self.config = config
        self.pacer = pacer
        self.repository = repository
        self.instructions = (
            instructions if instructions is not None else load_instructions(config.instructions_file)
        )

        self._running: bool = False
        self._logger = logger.bind(component="ReviewOrchestrator")

    @property
    def is_running(self) -> bool:
        """Whether ``run_forever`` is currently looping."""
        return self._running

    def stop(self) -> None:
        """Ask ``run_forever`` to exit after the current cycle."""
        self._running = False

    async def run_cycle(self) -> CycleReport:
        """Run one pass over the newest open pull requests.

        Returns:
            CycleReport with one result per listed pull request.
        """
        report = CycleReport()
        set_correlation_id(report.cycle_id)
        self._logger.info("cycle_started", repository=self.repository)

        try:
            candidates = await self.platform.list_open_items(self.config.page_size)
        except TransientRemoteError as e:
            self._logger.warning("candidate_listing_failed", error=str(e))
            report.listing_error = str(e)
            report.completed_at = datetime.now(timezone.utc)
            set_correlation_id(None)
            return report

        report.candidates = len(candidates)

        for index, candidate in enumerate(candidates):
            bind_item_context(self.repository, candidate.number)
            try:
                result = await self._process_guarded(candidate.number)
            finally:
                clear_item_context()
            report.results.append(result)

            if index < len(candidates) - 1:
                await self.pacer.wait()

        report.completed_at = datetime.now(timezone.utc)
        self._logger.info(
            "cycle_completed",
            candidates=report.candidates,
            published=report.count(ItemOutcome.PUBLISHED),
            ineligible=report.count(ItemOutcome.INELIGIBLE),
            exhausted=report.count(ItemOutcome.EXHAUSTED),
            failed=report.count(ItemOutcome.FAILED),
        )
        set_correlation_id(None)
        return report

    async def run_forever(self, cycle_pacer: Pacer, max_cycles: int | None = None) -> int:
        """Repeat poll cycles until stopped.

        Args:
            cycle_pacer: Pacing policy awaited between cycles.
            max_cycles: Stop after this many cycles. None loops until ``stop``.

        Returns:
            Number of cycles run.
        """
        self._running = True
        cycles = 0
        try:
            while self._running:
                await self.run_cycle()
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break
                if self._running:
                    await cycle_pacer.wait()
        finally:
            self._running = False
        return cycles

    async def _process_guarded(self, number: int) -> ItemResult:
        """Process one pull request, turning per-item errors into results."""
        try:
            return await self.process_item(number)
        except ContractViolationError as e:
            self._logger.error("internal_invariant_violated", error=str(e), state=e.state.name)
            return ItemResult(number=number, outcome=ItemOutcome.FAILED, reason=str(e))
        except TransientRemoteError as e:
            self._logger.warning("item_failed", operation=e.operation, error=str(e))
            return ItemResult(number=number, outcome=ItemOutcome.FAILED, reason=str(e))
        except Exception as e:
            self._logger.exception("item_unexpected_error")
            return ItemResult(number=number, outcome=ItemOutcome.FAILED, reason=str(e))

    async def process_item(self, number: int) -> ItemResult:
        """Run the full review flow for a single pull request.

        Args:
            number: Pull request number.

        Returns:
            ItemResult describing the outcome.

        Raises:
            TransientRemoteError: If any remote call fails.
            MissingFieldError: If the pull request has no description.
            ContractViolationError: If the tracker is asked to bump EXHAUSTED.
        """
        item = await self.platform.get_item(number)

        eligibility = check_eligibility(item, self.config.excluded_size_labels)
        if not eligibility.eligible:
            reason = eligibility.reason.value if eligibility.reason else None
            self._logger.info("item_skipped", reason=reason)
            return ItemResult(number=number, outcome=ItemOutcome.INELIGIBLE, reason=reason)

        precheck_text = analyze(item.change_records, squash_advisory=self.config.squash_advisory)

        if item.body is None:
            raise MissingFieldError("body", number)

        decision = await self.tracker.evaluate(number)
        if decision.verdict == Verdict.SKIP:
            return ItemResult(
                number=number,
                outcome=ItemOutcome.EXHAUSTED,
                reason="max attempts exhausted",
                attempt_state=decision.state_after,
            )

        prompt = build_prompt(self.instructions, item.body)
        generated = await self.generator.generate(prompt)
        self._logger.info(
            "review_generated",
            attempt=int(decision.state_after),
            length=len(generated),
        )

        comment = await self.platform.create_comment(
            number, compose_comment(self.config.header, precheck_text, generated)
        )
        self._logger.info("review_published", comment_id=comment.comment_id, url=comment.url)

        # The comment now excludes the item for good; a failed clear only
        # leaves stale markers behind.
        markers_cleared = True
        try:
            await self.tracker.clear(number)
        except TransientRemoteError as e:
            markers_cleared = False
            self._logger.warning("markers_clear_failed", error=str(e))

        return ItemResult(
            number=number,
            outcome=ItemOutcome.PUBLISHED,
            attempt_state=AttemptState.UNTRIED if markers_cleared else decision.state_after,
            comment_id=comment.comment_id,
            markers_cleared=markers_cleared,
        )
