"""Gemini API client for review generation.

Single request/response calls to the ``generateContent`` endpoint, with no
session and no retries. Failures surface as ``GenerationError``.

Example usage:
    >>> from reviewbot.config import GeminiConfig
    >>> async with GeminiClient(GeminiConfig(api_key="...")) as gemini:
    ...     text = await gemini.generate("Review this pull request: ...")
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from reviewbot.config import GeminiConfig
from reviewbot.errors import GenerationError

logger = structlog.get_logger(__name__)


def extract_text(data: dict[str, Any]) -> str:
    """Return the first text part of the first candidate.

    Raises:
        GenerationError: If the payload carries no text.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = next(part["text"] for part in parts if "text" in part)
    except (KeyError, IndexError, TypeError, StopIteration) as e:
        feedback = data.get("promptFeedback") if isinstance(data, dict) else None
        detail = "response has no candidate text"
        if feedback:
            detail += f" (prompt feedback: {feedback})"
        raise GenerationError("generate", detail) from e
    return text


class GeminiClient:
    """Async client for the Gemini ``generateContent`` API.

    Attributes:
        config: Gemini configuration containing URL, model, key and timeout
    """

    def __init__(self, config: GeminiConfig) -> None:
        """Initialize Gemini client.

        Args:
            config: GeminiConfig instance with connection settings
        """
        self.config = config
        self._client: httpx.AsyncClient | None = None
        logger.info(
            "gemini_client_initialized",
            url=config.url,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    async def __aenter__(self) -> GeminiClient:
        """Async context manager entry."""
        headers = {}
        if self.config.api_key is not None:
            headers["x-goog-api-key"] = self.config.api_key.get_secret_value()
        self._client = httpx.AsyncClient(
            base_url=self.config.url,
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
            raise RuntimeError("GeminiClient must be used as async context manager")
        return self._client

    async def generate(self, prompt: str) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Complete prompt text

        Returns:
            Text of the first candidate

        Raises:
            GenerationError: On timeout, connection failure, error status or
                a response without text
        """
        client = self._get_client()
        endpoint = f"/v1beta/models/{self.config.model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        logger.debug("gemini_request", prompt_length=len(prompt))

        try:
            response = await client.post(endpoint, json=payload)
        except httpx.TimeoutException as e:
            logger.warning("gemini_timeout", timeout_seconds=self.config.timeout_seconds)
            raise GenerationError(
                "generate", f"timed out after {self.config.timeout_seconds}s"
            ) from e
        except httpx.RequestError as e:
            logger.warning("gemini_request_error", url=self.config.url, error=str(e))
            raise GenerationError("generate", str(e)) from e

        if response.status_code != 200:
            logger.warning(
                "gemini_api_error",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise GenerationError("generate", response.text[:200], response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError("generate", "response is not valid JSON") from e

        text = extract_text(data)
        logger.info("gemini_text_generated", prompt_length=len(prompt), text_length=len(text))
        return text
