"""Reviewbot - automated first-pass reviews for GitHub pull requests.

This package polls the open pull requests of a repository, decides which ones
are eligible for an automated review, asks a text-generation service for a
review and publishes it as a comment. Attempt counting is persisted as
reactions on the pull request itself, so the process keeps no local state.
"""

__version__ = "0.1.0"
