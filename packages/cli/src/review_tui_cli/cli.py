"""CLI entry point for review-tui.

  review-tui <pr-url> [--bot NAME] [--token TOKEN] [--no-cache] [--cache-ttl N] [--dry-run]

Loads the PR's review comments (from the local cache when fresh), then
renders totals, the bot comment count, cache and auth status.
"""

from __future__ import annotations

import importlib.metadata
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler

from review_tui_cli.render import is_success, render_state
from review_tui_core.config import ConfigLayer, resolve_config
from review_tui_core.errors import ConfigMalformedError
from review_tui_core.loader import CommentLoader, LoadSession
from review_tui_store.file_cache import FileCommentCache

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _build_loader(config) -> CommentLoader:
    """Wire the loader to the on-disk cache.

    Lives here so review_tui_core never decides where the cache is stored.
    """
    cache = FileCommentCache() if config.cache.enabled else None
    return CommentLoader(cache=cache)


def _watch(session: LoadSession, pr_url: str, config) -> None:
    while True:
        key = click.getchar()
        if not key or key in ("q", "Q", "\x03"):
            return
        if key in ("r", "R"):
            logger.debug("Reload requested for %s", pr_url)
            session.start(pr_url, config)
            render_state(console, pr_url, session.wait(), config, watch=True)


@click.command()
@click.version_option(
    version=importlib.metadata.version("review-tui"),
    prog_name="review-tui",
)
@click.argument("pr_url")
@click.option("--dry-run", is_flag=True, help="Run without writing output.")
@click.option("--no-cache", "no_cache", is_flag=True, help="Disable the comment cache.")
@click.option(
    "--cache-ttl",
    type=click.IntRange(min=0),
    default=None,
    help="Seconds a cached comment list stays fresh. Overrides config files.",
)
@click.option("--bot", default=None, help="Bot username to filter on.")
@click.option("--token", default=None, help="GitHub token. Takes precedence over gh and GITHUB_TOKEN.")
@click.option("--watch", is_flag=True, help='Stay open: press "r" to reload, "q" to exit.')
@click.option("--verbose", "-v", is_flag=True, help="Log cache and auth decisions to stderr.")
def main(
    pr_url: str,
    dry_run: bool,
    no_cache: bool,
    cache_ttl: int | None,
    bot: str | None,
    token: str | None,
    watch: bool,
    verbose: bool,
):
    """Show review comment totals for a GitHub pull request.

    \b
    Settings are merged from, lowest precedence first:
      ~/.reviewtuirc, ~/.prsweeprc, ./.reviewtuirc, ./.prsweeprc (JSON)
      REVIEW_TUI_DRY_RUN, REVIEW_TUI_CACHE, REVIEW_TUI_CACHE_TTL,
      REVIEW_TUI_BOT, REVIEW_TUI_TOKEN
      command-line options

    \b
    Example:
      review-tui https://github.com/o/r/pull/1 --bot coderabbitai --no-cache
    """
    _configure_logging(verbose)

    flags = ConfigLayer(
        dry_run=True if dry_run else None,
        cache_enabled=False if no_cache else None,
        cache_ttl=cache_ttl,
        bot=bot,
        token=token,
    )
    try:
        config = resolve_config(os.getcwd(), flags)
    except ConfigMalformedError as e:
        raise click.ClickException(str(e)) from e

    session = LoadSession(_build_loader(config))
    session.start(pr_url, config)
    state = session.wait()
    render_state(console, pr_url, state, config, watch=watch)

    if watch:
        _watch(session, pr_url, config)
        state = session.state

    if not is_success(state):
        raise SystemExit(1)
