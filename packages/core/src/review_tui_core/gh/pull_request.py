from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from github import Auth, Github, GithubException

from review_tui_core.errors import FetchError, InvalidPullRequestURL
from review_tui_core.models import PullRequestRef, ReviewComment

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
EXPECTED_URL_SHAPE = "Expected https://github.com/<owner>/<repo>/pull/<number>."

_PULL_NUMBER_RE = re.compile(r"^\d+$")
_PER_PAGE = 100
_GITHUB_TIMESTAMP = "%Y-%m-%dT%H:%M:%SZ"


def parse_pr_url(url: str) -> PullRequestRef | None:
    """Split a pull request URL into owner, repo and number, or return None."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or parsed.hostname != GITHUB_HOST:
        return None

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) != 4 or parts[2] != "pull" or not _PULL_NUMBER_RE.match(parts[3]):
        return None

    return PullRequestRef(owner=parts[0], repo=parts[1], pull_number=int(parts[3]), url=url)


def parse_pr_url_strict(url: str) -> PullRequestRef:
    ref = parse_pr_url(url)
    if ref is None:
        raise InvalidPullRequestURL(EXPECTED_URL_SHAPE)
    return ref


def _describe(e: GithubException) -> str:
    data = e.data
    message = data.get("message") if isinstance(data, dict) else data
    return f"GitHub API error ({e.status}): {message or 'no details'}"


def _to_comment(c) -> ReviewComment:
    # Read attributes instead of raw_data: raw_data would re-fetch each comment.
    return ReviewComment(
        id=c.id,
        user_login=c.user.login if c.user is not None else "",
        body=c.body or "",
        path=c.path or "",
        line=getattr(c, "line", None),
        original_line=getattr(c, "original_line", None),
        diff_hunk=c.diff_hunk or "",
        created_at=c.created_at.strftime(_GITHUB_TIMESTAMP) if c.created_at is not None else "",
        html_url=c.html_url or "",
    )


def list_review_comments(ref: PullRequestRef, token: str) -> list[ReviewComment]:
    """Return every review comment on the pull request, in GitHub's order.

    Pagination is handled by PyGithub's PaginatedList. Any API or transport
    failure is raised as FetchError.
    """
    gh = Github(auth=Auth.Token(token), per_page=_PER_PAGE)
    try:
        pull = gh.get_repo(ref.full_name).get_pull(ref.pull_number)
        comments = [_to_comment(c) for c in pull.get_review_comments()]
    except GithubException as e:
        raise FetchError(_describe(e)) from e
    except OSError as e:
        raise FetchError(f"Could not reach GitHub: {e}") from e

    logger.debug("Fetched %d review comment(s) for %s#%d", len(comments), ref.full_name, ref.pull_number)
    return comments
