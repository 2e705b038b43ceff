"""Cache entry model and its on-disk JSON shape."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from review_tui_core.models import ReviewComment


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 instant, or return None if it is not one.

    Accepts a trailing ``Z``; naive timestamps are taken as UTC.
    """
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CacheEntry:
    cached_at: datetime
    comments: list[ReviewComment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "cachedAt": self.cached_at.astimezone(timezone.utc).isoformat(),
            "comments": [c.to_dict() for c in self.comments],
        }
