"""Review comment data models.

Shared by the fetch layer (which builds them from GitHub's REST payload) and
the cache (which persists them in that same shape).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PullRequestRef:
    owner: str
    repo: str
    pull_number: int
    url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class ReviewComment:
    """A single inline review comment on a pull request."""

    id: int
    user_login: str
    body: str
    path: str
    line: Optional[int]
    original_line: Optional[int]
    diff_hunk: str
    created_at: str  # ISO-8601, as returned by GitHub
    html_url: str

    @classmethod
    def from_dict(cls, d: dict) -> ReviewComment:
        """Build from a GitHub REST review-comment payload (or a cached copy of one)."""
        user = d.get("user") or {}
        return cls(
            id=d["id"],
            user_login=user.get("login", ""),
            body=d.get("body") or "",
            path=d.get("path") or "",
            line=d.get("line"),
            original_line=d.get("original_line"),
            diff_hunk=d.get("diff_hunk") or "",
            created_at=d.get("created_at") or "",
            html_url=d.get("html_url") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user": {"login": self.user_login},
            "body": self.body,
            "path": self.path,
            "line": self.line,
            "original_line": self.original_line,
            "diff_hunk": self.diff_hunk,
            "created_at": self.created_at,
            "html_url": self.html_url,
        }
