"""GitHub REST API client implementing the review platform interface.

Pull requests are the review items, reactions placed on the pull request's
issue are the attempt markers, and issue comments carry the published
reviews. Requests are never retried here: a failed call surfaces as
``GitHubAPIError`` and the pull request is revisited next cycle.

Example usage:
    >>> from reviewbot.config import GitHubConfig
    >>> async with GitHubClient(GitHubConfig(token="ghp_..."), "apache", "nuttx") as gh:
    ...     candidates = await gh.list_open_items(limit=20)
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from reviewbot.config import GitHubConfig
from reviewbot.errors import GitHubAPIError, MissingFieldError
from reviewbot.models import (
    Candidate,
    ChangeRecord,
    Item,
    ItemState,
    Marker,
    MarkerKind,
    PublishedComment,
)

logger = structlog.get_logger(__name__)

API_VERSION = "2022-11-28"


def parse_item(
    pull: dict[str, Any],
    commits: list[dict[str, Any]],
    size_label_prefix: str = "Size: ",
) -> Item:
    """Build an Item from a pull request payload and its commits.

    Args:
        pull: Payload of ``GET /repos/{owner}/{repo}/pulls/{number}``.
        commits: Payload of ``GET /repos/{owner}/{repo}/pulls/{number}/commits``.
        size_label_prefix: Prefix identifying the size classification label.

    Returns:
        The parsed Item.

    Raises:
        MissingFieldError: If the number, state or comment count is absent.
    """
    number = pull.get("number")
    if number is None:
        raise MissingFieldError("number")
    if pull.get("state") is None:
        raise MissingFieldError("state", number)
    if pull.get("comments") is None:
        raise MissingFieldError("comments", number)

    size_label = next(
        (
            label["name"]
            for label in pull.get("labels") or []
            if (label.get("name") or "").startswith(size_label_prefix)
        ),
        None,
    )

    records = []
    for entry in commits:
        # A null message is reported by the precheck as an empty message
        message = (entry.get("commit") or {}).get("message") or ""
        records.append(ChangeRecord(message=message, sha=entry.get("sha")))

    return Item(
        number=number,
        state=ItemState.parse(pull["state"]),
        comment_count=pull["comments"] + (pull.get("review_comments") or 0),
        size_label=size_label,
        body=pull.get("body"),
        change_records=records,
        title=pull.get("title") or "",
        author=(pull.get("user") or {}).get("login"),
        url=pull.get("html_url"),
    )


class GitHubClient:
    """Async client for the subset of the GitHub REST API Reviewbot uses.

    Attributes:
        config: GitHub configuration (token, API URL, reactions, timeout)
        owner: Repository owner
        repo: Repository name
        size_label_prefix: Prefix identifying size labels
    """

    def __init__(
        self,
        config: GitHubConfig,
        owner: str,
        repo: str,
        size_label_prefix: str = "Size: ",
    ) -> None:
        """Initialize the GitHub client.

        Args:
            config: GitHubConfig instance with connection settings
            owner: Repository owner
            repo: Repository name
            size_label_prefix: Prefix identifying size labels
        """
        self.config = config
        self.owner = owner
        self.repo = repo
        self.size_label_prefix = size_label_prefix
        self._client: httpx.AsyncClient | None = None
        self._reaction_for_kind = {
            MarkerKind.PRIMARY: config.primary_reaction,
            MarkerKind.SECONDARY: config.secondary_reaction,
        }
        self._kind_for_reaction = {v: k for k, v in self._reaction_for_kind.items()}
        logger.info(
            "github_client_initialized",
            api_url=config.api_url,
            repository=self.repository,
        )

    @property
    def repository(self) -> str:
        """Repository identity as "owner/name"."""
        return f"{self.owner}/{self.repo}"

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if self.config.token is not None:
            headers["Authorization"] = f"Bearer {self.config.token.get_secret_value()}"
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers=headers,
            timeout=httpx.Timeout(self.config.timeout_seconds),
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return the active HTTP client.

        Raises:
            RuntimeError: If called outside async context manager
        """
        if self._client is None:
            raise RuntimeError("GitHubClient must be used as async context manager")
        return self._client

    async def _request(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> httpx.Response:
        """Send one request, mapping every failure onto GitHubAPIError."""
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("github_timeout", operation=operation, path=path)
            raise GitHubAPIError(
                operation, f"timed out after {self.config.timeout_seconds}s"
            ) from e
        except httpx.RequestError as e:
            logger.warning("github_request_error", operation=operation, error=str(e))
            raise GitHubAPIError(operation, str(e)) from e

        if not response.is_success:
            logger.warning(
                "github_api_error",
                operation=operation,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise GitHubAPIError(operation, response.text[:200], response.status_code)
        return response

    @staticmethod
    def _json(operation: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(operation, "response is not valid JSON") from e

    async def list_open_items(self, limit: int) -> list[Candidate]:
        """List the newest open pull requests, most recently created first."""
        operation = "list_open_items"
        response = await self._request(
            operation,
            "GET",
            f"/repos/{self.owner}/{self.repo}/pulls",
            params={
                "state": "open",
                "sort": "created",
                "direction": "desc",
                "per_page": limit,
            },
        )
        pulls = self._json(operation, response)
        try:
            candidates = [
                Candidate(
                    number=pull["number"],
                    title=pull.get("title") or "",
                    created_at=pull.get("created_at"),
                )
                for pull in pulls
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning("github_malformed_listing", operation=operation, error=str(e))
            raise GitHubAPIError(operation, "malformed pull request listing") from e
        logger.debug("open_items_listed", count=len(candidates))
        return candidates

    async def get_item(self, number: int) -> Item:
        """Fetch a pull request and its commits."""
        operation = "get_item"
        base = f"/repos/{self.owner}/{self.repo}/pulls/{number}"
        pull = self._json(operation, await self._request(operation, "GET", base))
        commits = self._json(
            operation,
            await self._request(operation, "GET", f"{base}/commits", params={"per_page": 100}),
        )
        return parse_item(pull, commits, self.size_label_prefix)

    async def list_markers(self, number: int) -> list[Marker]:
        """List reactions on a pull request that map onto marker kinds."""
        operation = "list_markers"
        response = await self._request(
            operation,
            "GET",
            f"/repos/{self.owner}/{self.repo}/issues/{number}/reactions",
            params={"per_page": 100},
        )
        markers = []
        for reaction in self._json(operation, response):
            kind = self._kind_for_reaction.get(reaction.get("content"))
            owner = (reaction.get("user") or {}).get("login")
            if kind is None or owner is None:
                continue
            markers.append(Marker(marker_id=reaction["id"], kind=kind, owner=owner))
        return markers

    async def create_marker(self, number: int, kind: MarkerKind) -> int:
        """Add the reaction for ``kind`` and return the reaction ID."""
        operation = "create_marker"
        response = await self._request(
            operation,
            "POST",
            f"/repos/{self.owner}/{self.repo}/issues/{number}/reactions",
            json={"content": self._reaction_for_kind[kind]},
        )
        marker_id = self._json(operation, response).get("id")
        if marker_id is None:
            raise GitHubAPIError(operation, "response has no reaction id")
        logger.debug("marker_created", item_number=number, kind=kind.value, marker_id=marker_id)
        return marker_id

    async def delete_marker(self, number: int, marker_id: int) -> None:
        """Delete a reaction by ID."""
        await self._request(
            "delete_marker",
            "DELETE",
            f"/repos/{self.owner}/{self.repo}/issues/{number}/reactions/{marker_id}",
        )
        logger.debug("marker_deleted", item_number=number, marker_id=marker_id)

    async def create_comment(self, number: int, body: str) -> PublishedComment:
        """Publish an issue comment on a pull request."""
        operation = "create_comment"
        response = await self._request(
            operation,
            "POST",
            f"/repos/{self.owner}/{self.repo}/issues/{number}/comments",
            json={"body": body},
        )
        data = self._json(operation, response)
        if data.get("id") is None:
            raise GitHubAPIError(operation, "response has no comment id")
        return PublishedComment(
            comment_id=data["id"],
            body=data.get("body") or body,
            url=data.get("html_url"),
        )

    async def get_identity(self) -> str:
        """Return the login of the account owning the token."""
        operation = "get_identity"
        data = self._json(operation, await self._request(operation, "GET", "/user"))
        login = data.get("login")
        if not login:
            raise GitHubAPIError(operation, "response has no login")
        return login
