"""Error types shared by the config, auth, cache and fetch layers.

Each concrete error carries a ``category`` naming the failure class the
loader reports in ``LoadFailure.error_type``. Soft failures (missing config
file, failed ``gh`` helper, missing or expired cache entry) never raise; they
are recovered where they happen.
"""

from __future__ import annotations


class ReviewTuiError(Exception):
    """Base class for every error review-tui raises on purpose."""

    category = "Error"


class InvalidPullRequestURL(ReviewTuiError):
    category = "InvalidInput"


class MissingCredentialError(ReviewTuiError):
    category = "MissingCredential"


class CacheCorruptionError(ReviewTuiError):
    """A cache entry exists but could not be read or parsed."""

    category = "StorageCorruption"


class CacheWriteError(ReviewTuiError):
    """The cache directory or entry could not be created or written."""

    category = "StorageIO"


class FetchError(ReviewTuiError):
    category = "NetworkFailure"


class ConfigMalformedError(ReviewTuiError):
    """A config file exists but does not hold a valid JSON settings object."""

    category = "ConfigMalformed"
