"""FileCommentCache: one JSON file per pull request URL.

Entries live in the per-user cache directory and are never deleted: an
expired entry is ignored on read and replaced by the next successful fetch.

File name: ``v1-<sha256("v1:" + pr_url)>.json``. The version tag is part of
both the hashed input and the name, so a future format can sit next to this
one without colliding.

Data format:
  {"cachedAt": "<ISO-8601 UTC>", "comments": [<GitHub review comment>, ...]}
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping

from review_tui_core.errors import CacheCorruptionError, CacheWriteError
from review_tui_core.models import ReviewComment
from review_tui_store.base import BaseCommentCache
from review_tui_store.models import CacheEntry, parse_timestamp

logger = logging.getLogger(__name__)

APP_NAME = "review-tui"
CACHE_VERSION = "v1"


def default_cache_dir(environ: Mapping[str, str] | None = None, platform: str | None = None) -> Path:
    """Return the per-user cache directory.

    XDG_CACHE_HOME wins on every platform; otherwise the OS convention applies.
    """
    env = os.environ if environ is None else environ
    platform = sys.platform if platform is None else platform

    override = env.get("XDG_CACHE_HOME")
    if override:
        return Path(override) / APP_NAME

    home = Path.home()
    if platform == "darwin":
        return home / "Library" / "Caches" / APP_NAME
    if platform == "win32":
        local_app_data = env.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data) / APP_NAME / "Cache"
        return home / "AppData" / "Local" / APP_NAME / "Cache"
    return home / ".cache" / APP_NAME


def cache_key_for_url(pr_url: str) -> str:
    digest = hashlib.sha256(f"{CACHE_VERSION}:{pr_url}".encode("utf-8")).hexdigest()
    return f"{CACHE_VERSION}-{digest}.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileCommentCache(BaseCommentCache):
    """Stores each PR's review comments as a JSON file in the cache directory.

    ``cache_dir`` defaults to :func:`default_cache_dir`, resolved on first
    use. ``clock`` returns the current aware datetime and exists for tests.
    """

    def __init__(self, cache_dir: str | Path | None = None, clock: Callable[[], datetime] | None = None):
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self._clock = clock or _utcnow

    @property
    def cache_dir(self) -> Path:
        if self._cache_dir is None:
            self._cache_dir = default_cache_dir()
        return self._cache_dir

    def path_for(self, pr_url: str) -> Path:
        return self.cache_dir / cache_key_for_url(pr_url)

    def read(self, pr_url: str, ttl_seconds: int) -> CacheEntry | None:
        if ttl_seconds <= 0:
            return None

        path = self.path_for(pr_url)
        data = self._read_file(path)
        if data is None:
            logger.debug("Cache miss for %s (no entry)", pr_url)
            return None

        cached_at = parse_timestamp(data.get("cachedAt"))
        if cached_at is None:
            logger.debug("Cache miss for %s (unparseable cachedAt %r)", pr_url, data.get("cachedAt"))
            return None

        age_seconds = (self._clock() - cached_at).total_seconds()
        if age_seconds > ttl_seconds:
            logger.debug("Cache miss for %s (entry is %.0fs old, ttl %ds)", pr_url, age_seconds, ttl_seconds)
            return None

        comments = self._parse_comments(data.get("comments"), path)
        logger.debug("Cache hit for %s (%d comment(s), %.0fs old)", pr_url, len(comments), age_seconds)
        return CacheEntry(cached_at=cached_at, comments=comments)

    def write(self, pr_url: str, comments: list[ReviewComment]) -> None:
        entry = CacheEntry(cached_at=self._clock(), comments=list(comments))
        path = self.path_for(pr_url)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(entry.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise CacheWriteError(f"Could not write cache entry {path}: {e}") from e
        logger.debug("Cached %d comment(s) for %s at %s", len(entry.comments), pr_url, path)

    @staticmethod
    def _read_file(path: Path) -> dict | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruptionError(f"Could not read cache entry {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheCorruptionError(f"Cache entry {path} is not valid UTF-8: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheCorruptionError(f"Cache entry {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CacheCorruptionError(f"Cache entry {path} must contain a JSON object.")
        return data

    @staticmethod
    def _parse_comments(raw, path: Path) -> list[ReviewComment]:
        if not isinstance(raw, list):
            raise CacheCorruptionError(f"Cache entry {path} has no comment list.")
        try:
            return [ReviewComment.from_dict(c) for c in raw]
        except (KeyError, TypeError, AttributeError) as e:
            raise CacheCorruptionError(f"Cache entry {path} holds a malformed comment: {e}") from e
