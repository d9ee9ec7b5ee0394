"""Main CLI entry point for Reviewbot.

This module provides the Typer application that runs review cycles against a
repository and inspects or resets the attempt markers of a pull request.

Usage:
    reviewbot run apache nuttx
    reviewbot run apache nuttx --once
    reviewbot status apache nuttx 13494
    reviewbot reset apache nuttx 13494
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from reviewbot.config import ReviewBotConfig, load_config, require_credentials
from reviewbot.errors import ConfigurationError, TransientRemoteError
from reviewbot.integrations.gemini import GeminiClient
from reviewbot.integrations.github import GitHubClient
from reviewbot.logging import get_logger, setup_logging
from reviewbot.orchestrator.pacing import FixedDelayPacer
from reviewbot.orchestrator.poller import CycleReport, ItemOutcome, ReviewOrchestrator
from reviewbot.review.markers import MAX_ATTEMPTS
from reviewbot.review.tracker import AttemptTracker

app = typer.Typer(
    name="reviewbot",
    help="Reviewbot: automated first-pass reviews for GitHub pull requests",
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Reviewbot configuration
    """

    def __init__(self, config: ReviewBotConfig):
        self.config = config


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ReviewBotConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


def _github_client(config: ReviewBotConfig, owner: str, repo: str) -> GitHubClient:
    return GitHubClient(config.github, owner, repo, size_label_prefix=config.review.size_label_prefix)


async def _resolve_bot_login(config: ReviewBotConfig, github: GitHubClient) -> str:
    """Return the configured bot login, or the token owner's login.

    Raises:
        ConfigurationError: If the login cannot be determined.
    """
    if config.github.bot_login:
        return config.github.bot_login
    try:
        return await github.get_identity()
    except TransientRemoteError as e:
        raise ConfigurationError(f"Cannot determine bot identity: {e}") from e


def render_report(report: CycleReport) -> Table:
    """Render a cycle report as a Rich table."""
    table = Table(title=f"Cycle {report.cycle_id}")
    table.add_column("PR", style="bold cyan", justify="right")
    table.add_column("Outcome")
    table.add_column("Detail", style="dim")

    styles = {
        ItemOutcome.PUBLISHED: "green",
        ItemOutcome.INELIGIBLE: "dim",
        ItemOutcome.EXHAUSTED: "yellow",
        ItemOutcome.FAILED: "red",
    }
    for result in report.results:
        style = styles[result.outcome]
        table.add_row(
            str(result.number),
            f"[{style}]{result.outcome.value}[/{style}]",
            result.reason or "",
        )
    return table


async def _run_reviews(
    config: ReviewBotConfig,
    owner: str,
    repo: str,
    once: bool,
    max_cycles: int | None,
) -> CycleReport | int:
    async with _github_client(config, owner, repo) as github, GeminiClient(config.gemini) as gemini:
        bot_login = await _resolve_bot_login(config, github)
        logger.info("bot_identity_resolved", bot_login=bot_login)

        orchestrator = ReviewOrchestrator(
            platform=github,
            generator=gemini,
            tracker=AttemptTracker(github, bot_login),
            config=config.review,
            pacer=FixedDelayPacer(config.pacing.item_delay_seconds),
            repository=github.repository,
        )

        if once:
            return await orchestrator.run_cycle()

        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGTERM, orchestrator.stop)
        try:
            return await orchestrator.run_forever(
                FixedDelayPacer(config.pacing.cycle_delay_seconds),
                max_cycles=max_cycles,
            )
        finally:
            loop.remove_signal_handler(signal.SIGTERM)


@app.command()
def run(
    owner: Annotated[str, typer.Argument(help="Repository owner")],
    repo: Annotated[str, typer.Argument(help="Repository name")],
    once: Annotated[
        bool,
        typer.Option("--once", help="Run a single cycle and exit"),
    ] = False,
    max_cycles: Annotated[
        Optional[int],
        typer.Option("--max-cycles", min=1, help="Stop after this many cycles"),
    ] = None,
) -> None:
    """Review eligible open pull requests of OWNER/REPO.

    Runs poll cycles until interrupted (or a single one with --once),
    publishing at most one review per pull request.
    """
    ctx = get_app_context()

    try:
        require_credentials(ctx.config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[bold cyan]Reviewing {owner}/{repo}[/bold cyan]")

    try:
        outcome = asyncio.run(_run_reviews(ctx.config, owner, repo, once, max_cycles))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=130)

    if isinstance(outcome, CycleReport):
        if outcome.listing_error:
            console.print(f"[red]Listing failed:[/red] {outcome.listing_error}")
        console.print(render_report(outcome))
    else:
        console.print(f"[green]Completed {outcome} cycle(s)[/green]")


async def _show_status(config: ReviewBotConfig, owner: str, repo: str, number: int) -> tuple[str, int]:
    async with _github_client(config, owner, repo) as github:
        bot_login = await _resolve_bot_login(config, github)
        state = await AttemptTracker(github, bot_login).read_state(number)
        return state.name, int(state)


async def _reset_markers(config: ReviewBotConfig, owner: str, repo: str, number: int) -> int:
    async with _github_client(config, owner, repo) as github:
        bot_login = await _resolve_bot_login(config, github)
        return await AttemptTracker(github, bot_login).clear(number)


@app.command()
def status(
    owner: Annotated[str, typer.Argument(help="Repository owner")],
    repo: Annotated[str, typer.Argument(help="Repository name")],
    number: Annotated[int, typer.Argument(help="Pull request number")],
) -> None:
    """Show the attempt state recorded on a pull request."""
    ctx = get_app_context()
    try:
        require_credentials(ctx.config, generation=False)
        name, attempts = asyncio.run(_show_status(ctx.config, owner, repo, number))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)
    except TransientRemoteError as e:
        console.print(f"[red]GitHub error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"PR #{number}: [bold]{name}[/bold] ({attempts}/{MAX_ATTEMPTS} attempts)")


@app.command()
def reset(
    owner: Annotated[str, typer.Argument(help="Repository owner")],
    repo: Annotated[str, typer.Argument(help="Repository name")],
    number: Annotated[int, typer.Argument(help="Pull request number")],
) -> None:
    """Clear the bot's attempt markers so a pull request can be retried."""
    ctx = get_app_context()
    try:
        require_credentials(ctx.config, generation=False)
        deleted = asyncio.run(_reset_markers(ctx.config, owner, repo, number))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)
    except TransientRemoteError as e:
        console.print(f"[red]GitHub error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"[green]Cleared {deleted} marker(s) on PR #{number}[/green]")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and initialize application context."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
