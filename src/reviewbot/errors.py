"""Exception hierarchy for Reviewbot.

Per-item errors (``TransientRemoteError`` and its subclasses,
``ContractViolationError``) are caught by the orchestrator and abandon only the
current item for the current cycle. ``ConfigurationError`` is the only error
that terminates the process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reviewbot.review.markers import AttemptState


class ReviewBotError(Exception):
    """Base exception for Reviewbot errors."""

    pass


class ConfigurationError(ReviewBotError):
    """Raised when required configuration (e.g. credentials) is missing or invalid."""

    pass


class TransientRemoteError(ReviewBotError):
    """Raised when a call to a remote collaborator fails.

    Attributes:
        operation: Name of the remote operation that failed.
        detail: Human-readable failure description.
        status_code: HTTP status code, if the failure carried one.
    """

    def __init__(
        self,
        operation: str,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        msg = f"{operation} failed: {detail}"
        if status_code is not None:
            msg = f"{operation} failed with HTTP {status_code}: {detail}"
        super().__init__(msg)


class GitHubAPIError(TransientRemoteError):
    """Raised when the GitHub REST API call fails or returns an error status."""

    pass


class GenerationError(TransientRemoteError):
    """Raised when the text-generation service fails or returns no text."""

    pass


class MissingFieldError(TransientRemoteError):
    """Raised when a fetched item lacks a field the review flow requires.

    Attributes:
        field: Name of the missing field.
        item_number: Pull request number the field was expected on.
    """

    def __init__(self, field: str, item_number: int | None = None) -> None:
        self.field = field
        self.item_number = item_number
        detail = f"missing field '{field}'"
        if item_number is not None:
            detail += f" on item {item_number}"
        super().__init__("fetch_item", detail)


class ContractViolationError(ReviewBotError):
    """Raised when an attempt counter is bumped past its terminal state.

    The orchestrator must treat the exhausted state as terminal before it
    ever asks for a bump, so reaching this error is an internal bug.

    Attributes:
        state: The attempt state the bump was requested from.
        item_number: Pull request number, when known.
    """

    def __init__(self, state: AttemptState, item_number: int | None = None) -> None:
        self.state = state
        self.item_number = item_number
        msg = f"Cannot bump attempt state {state.name}: attempts already exhausted"
        if item_number is not None:
            msg += f" for item {item_number}"
        super().__init__(msg)
