"""Load orchestration: cache lookup, fetch, cache write, bot filtering.

    load() → parse URL → resolve token → cache read (if enabled)
           → fetch + cache write (on miss) → count bot comments → LoadSuccess

Every expected failure becomes a LoadFailure instead of an exception, so the
caller always has a state to render. LoadSession adds cooperative
cancellation on top: a load superseded by a newer one never publishes its
result.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Union

from review_tui_core.auth import TokenResult, TokenSource, resolve_github_token
from review_tui_core.errors import CacheWriteError, ReviewTuiError
from review_tui_core.gh.pull_request import list_review_comments, parse_pr_url_strict

if TYPE_CHECKING:
    from review_tui_core.config import Config
    from review_tui_core.models import PullRequestRef, ReviewComment
    from review_tui_store.base import BaseCommentCache

logger = logging.getLogger(__name__)

STATUS_LOADING = "Loading comments..."
STATUS_CACHED = "Loaded from cache."
STATUS_FETCHED = "Fetched from GitHub."
STATUS_INVALID_URL = "Invalid PR URL."
STATUS_ERROR = "Error loading comments."


@dataclass(frozen=True)
class LoadingState:
    status: str = STATUS_LOADING


@dataclass(frozen=True)
class LoadSuccess:
    total: int
    bot_total: int
    cache_hit: bool
    auth_source: TokenSource
    status: str = STATUS_FETCHED
    warning: Optional[str] = None  # set when the cache write failed after a good fetch


@dataclass(frozen=True)
class LoadFailure:
    reason: str
    status: str = STATUS_ERROR
    error_type: str = "Error"


DisplayState = Union[LoadingState, LoadSuccess, LoadFailure]


class CancelToken:
    """Thread-safe flag telling an in-flight load that its result is no longer wanted."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def count_bot_comments(comments: list[ReviewComment], bot: str | None) -> int:
    """Count comments authored by ``bot`` (exact, case-sensitive). Blank bot → 0."""
    if not bot or not bot.strip():
        return 0
    return sum(1 for c in comments if c.user_login == bot)


def _failure(error: ReviewTuiError, status: str = STATUS_ERROR) -> LoadFailure:
    return LoadFailure(reason=str(error), status=status, error_type=error.category)


class CommentLoader:
    """Decides between the cache and GitHub for one PR URL and builds the display state.

    Collaborators are injected so tests can stub the network, the token
    sources and the cache. ``cache`` may be None only when every config
    passed to load() has caching disabled.
    """

    def __init__(
        self,
        cache: BaseCommentCache | None = None,
        fetch_comments: Callable[[PullRequestRef, str], list[ReviewComment]] = list_review_comments,
        resolve_token: Callable[[Optional[str]], TokenResult] = resolve_github_token,
    ):
        self._cache = cache
        self._fetch_comments = fetch_comments
        self._resolve_token = resolve_token

    def load(self, pr_url: str, config: Config, cancel_token: CancelToken | None = None) -> DisplayState | None:
        """Run one load. Returns None if ``cancel_token`` was cancelled along the way."""
        token = cancel_token or CancelToken()

        try:
            ref = parse_pr_url_strict(pr_url)
        except ReviewTuiError as e:
            return _failure(e, status=STATUS_INVALID_URL)

        try:
            auth = self._resolve_token(config.token)
            if token.cancelled:
                return None
            logger.debug("Using GitHub token from %s", auth.source.label)

            comments = None
            if config.cache.enabled:
                entry = self._cache.read(pr_url, config.cache.ttl)
                if token.cancelled:
                    return None
                if entry is not None:
                    comments = entry.comments
            cache_hit = comments is not None

            warning = None
            if not cache_hit:
                comments = self._fetch_comments(ref, auth.token)
                warning = self._store(pr_url, comments, config)
                if token.cancelled:
                    return None
        except ReviewTuiError as e:
            logger.debug("Load of %s failed: %s", pr_url, e)
            return _failure(e)

        return LoadSuccess(
            total=len(comments),
            bot_total=count_bot_comments(comments, config.bot),
            cache_hit=cache_hit,
            auth_source=auth.source,
            status=STATUS_CACHED if cache_hit else STATUS_FETCHED,
            warning=warning,
        )

    def _store(self, pr_url: str, comments: list[ReviewComment], config: Config) -> str | None:
        """Write the fetched comments to the cache; return a warning instead of failing."""
        if not config.cache.enabled:
            return None
        try:
            self._cache.write(pr_url, comments)
        except CacheWriteError as e:
            logger.warning("Cache write failed: %s", e)
            return f"Comments were not cached: {e}"
        return None


class LoadSession:
    """Holds the state a presentation layer renders and runs loads on a worker thread.

    start() cancels whatever load is still running, so only the most recent
    load can commit its result.
    """

    def __init__(self, loader: CommentLoader, on_change: Callable[[DisplayState], None] | None = None):
        self._loader = loader
        self._on_change = on_change
        self._lock = threading.Lock()
        self._state: DisplayState = LoadingState()
        self._cancel_token: CancelToken | None = None
        self._worker: threading.Thread | None = None

    @property
    def state(self) -> DisplayState:
        with self._lock:
            return self._state

    def start(self, pr_url: str, config: Config) -> CancelToken:
        token = CancelToken()
        with self._lock:
            if self._cancel_token is not None:
                self._cancel_token.cancel()
            self._cancel_token = token
            worker = threading.Thread(target=self._run, args=(pr_url, config, token), daemon=True)
            self._worker = worker
        self._commit(LoadingState(), token)
        worker.start()
        return token

    def wait(self, timeout: float | None = None) -> DisplayState:
        """Block until the most recently started load finishes and return the current state."""
        with self._lock:
            worker = self._worker
        if worker is not None:
            worker.join(timeout)
        return self.state

    def cancel(self) -> None:
        with self._lock:
            if self._cancel_token is not None:
                self._cancel_token.cancel()

    def _run(self, pr_url: str, config: Config, token: CancelToken) -> None:
        try:
            result = self._loader.load(pr_url, config, cancel_token=token)
        except Exception as e:
            # Unexpected errors still have to reach the screen from a worker thread.
            logger.exception("Unexpected error while loading %s", pr_url)
            result = LoadFailure(reason=str(e) or type(e).__name__)
        if result is None:
            logger.debug("Discarding cancelled load of %s", pr_url)
            return
        self._commit(result, token)

    def _commit(self, state: DisplayState, token: CancelToken) -> None:
        with self._lock:
            if token.cancelled or token is not self._cancel_token:
                return
            self._state = state
        if self._on_change is not None:
            self._on_change(state)
