"""Abstract comment cache interface.

The loader depends on BaseCommentCache, not on the file-backed
implementation, so tests can hand it an in-memory cache.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from review_tui_core.models import ReviewComment
    from review_tui_store.models import CacheEntry


class BaseCommentCache(ABC):
    """One cached comment list per pull request URL."""

    @abstractmethod
    def read(self, pr_url: str, ttl_seconds: int) -> CacheEntry | None:
        """Return the cached entry for ``pr_url`` if it is at most ``ttl_seconds`` old.

        Returns None for a non-positive TTL, a missing entry or an expired one.
        Raises CacheCorruptionError when an entry exists but cannot be read.
        """

    @abstractmethod
    def write(self, pr_url: str, comments: list[ReviewComment]) -> None:
        """Replace the cached entry for ``pr_url``.

        Raises CacheWriteError when the entry cannot be stored.
        """
