"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. Explicit token (``--token`` flag, REVIEW_TUI_TOKEN or a config file)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)
  3. GITHUB_TOKEN environment variable
"""

from __future__ import annotations

import enum
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from review_tui_core.errors import MissingCredentialError

logger = logging.getLogger(__name__)

_GH_TIMEOUT_SECONDS = 5

MISSING_TOKEN_MESSAGE = "Missing GitHub token. Pass --token, run `gh auth login`, or set GITHUB_TOKEN."


class TokenSource(enum.Enum):
    FLAG = "flag"
    GH = "gh"
    ENV = "env"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    TokenSource.FLAG: "token flag",
    TokenSource.GH: "gh auth token",
    TokenSource.ENV: "GITHUB_TOKEN",
}


@dataclass(frozen=True)
class TokenResult:
    token: str
    source: TokenSource


def read_gh_auth_token() -> Optional[str]:
    """Return the token stored by `gh auth login`, or None.

    Never raises: a missing binary, a timeout, a non-zero exit or empty
    output all mean "try the next source".
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("gh auth token unavailable: %s", e)
        return None

    if result.returncode != 0:
        logger.debug("gh auth token exited with status %d", result.returncode)
        return None
    token = (result.stdout or "").strip()
    return token or None


def resolve_github_token(
    cli_token: Optional[str] = None,
    *,
    read_gh_token: Callable[[], Optional[str]] = read_gh_auth_token,
    environ: Mapping[str, str] | None = None,
) -> TokenResult:
    """Return the first available GitHub token and where it came from.

    Raises MissingCredentialError when no source yields a non-blank token.
    """
    if cli_token and cli_token.strip():
        logger.debug("Using GitHub token passed explicitly.")
        return TokenResult(token=cli_token.strip(), source=TokenSource.FLAG)

    gh_token = (read_gh_token() or "").strip()
    if gh_token:
        logger.debug("Resolved GitHub token via gh CLI session.")
        return TokenResult(token=gh_token, source=TokenSource.GH)

    env = os.environ if environ is None else environ
    env_token = (env.get("GITHUB_TOKEN") or "").strip()
    if env_token:
        logger.debug("Resolved GitHub token from GITHUB_TOKEN.")
        return TokenResult(token=env_token, source=TokenSource.ENV)

    raise MissingCredentialError(MISSING_TOKEN_MESSAGE)
