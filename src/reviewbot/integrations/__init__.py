"""Integration modules for external systems."""

from __future__ import annotations

from reviewbot.integrations.base import ReviewGenerator, ReviewPlatform
from reviewbot.integrations.gemini import GeminiClient
from reviewbot.integrations.github import GitHubClient

__all__ = [
    "GeminiClient",
    "GitHubClient",
    "ReviewGenerator",
    "ReviewPlatform",
]
