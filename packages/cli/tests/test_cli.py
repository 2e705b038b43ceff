"""Tests for the CLI entry point."""

import json
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from review_tui_cli.cli import _build_loader, main
from review_tui_core.auth import TokenResult, TokenSource
from review_tui_core.config import CacheConfig, Config
from review_tui_core.errors import FetchError
from review_tui_core.loader import CommentLoader
from review_tui_core.models import ReviewComment
from review_tui_store.file_cache import FileCommentCache

PR_URL = "https://github.com/o/r/pull/7"


def _comment(id_, login):
    return ReviewComment(
        id=id_,
        user_login=login,
        body="",
        path="a.py",
        line=1,
        original_line=1,
        diff_hunk="",
        created_at="2024-01-01T00:00:00Z",
        html_url="",
    )


COMMENTS = [_comment(1, "coderabbitai"), _comment(2, "alice"), _comment(3, "coderabbitai")]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep config lookups and the cache inside tmp_path."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in ("REVIEW_TUI_DRY_RUN", "REVIEW_TUI_CACHE", "REVIEW_TUI_CACHE_TTL", "REVIEW_TUI_BOT", "REVIEW_TUI_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(project)
    return home, project


def _patch_loader(mocker, fetch=None, source=TokenSource.FLAG):
    """Swap the network and token sources for stubs, keeping the real cache wiring."""
    fetch = fetch or MagicMock(return_value=COMMENTS)
    resolve = MagicMock(return_value=TokenResult(token="tok", source=source))
    configs = []

    def build(config):
        configs.append(config)
        cache = FileCommentCache() if config.cache.enabled else None
        return CommentLoader(cache=cache, fetch_comments=fetch, resolve_token=resolve)

    mocker.patch("review_tui_cli.cli._build_loader", side_effect=build)
    return fetch, resolve, configs


class TestCLIRender:
    def test_shows_totals(self, mocker):
        _patch_loader(mocker, source=TokenSource.GH)

        result = CliRunner().invoke(main, [PR_URL, "--bot", "coderabbitai"])

        assert result.exit_code == 0, result.output
        assert "Fetched from GitHub." in result.output
        assert "Total review comments: 3" in result.output
        assert "Bot comments (coderabbitai): 2" in result.output
        assert "Cache: miss" in result.output
        assert "Auth: gh auth token" in result.output

    def test_second_run_hits_cache(self, mocker):
        fetch, _, _ = _patch_loader(mocker)

        CliRunner().invoke(main, [PR_URL])
        result = CliRunner().invoke(main, [PR_URL])

        assert "Cache: hit" in result.output
        assert "Loaded from cache." in result.output
        assert fetch.call_count == 1

    def test_no_cache_always_fetches(self, mocker):
        fetch, _, configs = _patch_loader(mocker)

        CliRunner().invoke(main, [PR_URL, "--no-cache"])
        result = CliRunner().invoke(main, [PR_URL, "--no-cache"])

        assert "Cache: miss" in result.output
        assert fetch.call_count == 2
        assert configs[0].cache.enabled is False

    def test_bot_none_shown_when_not_set(self, mocker):
        _patch_loader(mocker)
        result = CliRunner().invoke(main, [PR_URL])
        assert "Bot comments (none): 0" in result.output

    def test_token_redacted_in_config_view(self, mocker):
        _patch_loader(mocker)
        result = CliRunner().invoke(main, [PR_URL, "--token", "super-secret"])
        assert "super-secret" not in result.output
        assert "<set>" in result.output

    def test_invalid_url_exits_nonzero(self, mocker):
        _, resolve, _ = _patch_loader(mocker)

        result = CliRunner().invoke(main, ["https://example.com/x"])

        assert result.exit_code == 1
        assert "Invalid PR URL." in result.output
        resolve.assert_not_called()

    def test_fetch_error_exits_nonzero(self, mocker):
        _patch_loader(mocker, fetch=MagicMock(side_effect=FetchError("GitHub API error (404): Not Found")))

        result = CliRunner().invoke(main, [PR_URL])

        assert result.exit_code == 1
        assert "Error loading comments." in result.output
        assert "Not Found" in result.output

    def test_missing_pr_url_is_usage_error(self):
        result = CliRunner().invoke(main, [])
        assert result.exit_code == 2


class TestCLIConfig:
    def test_flags_override_project_file(self, mocker, isolated_env):
        _, project = isolated_env
        (project / ".reviewtuirc").write_text(json.dumps({"bot": "file-bot", "cache": {"ttl": 10}}))
        _, _, configs = _patch_loader(mocker)

        CliRunner().invoke(main, [PR_URL, "--bot", "flag-bot", "--dry-run"])

        assert configs[0] == Config(dry_run=True, cache=CacheConfig(enabled=True, ttl=10), bot="flag-bot")

    def test_cache_ttl_flag(self, mocker):
        _, _, configs = _patch_loader(mocker)
        CliRunner().invoke(main, [PR_URL, "--cache-ttl", "60"])
        assert configs[0].cache.ttl == 60

    def test_negative_cache_ttl_rejected(self, mocker):
        _patch_loader(mocker)
        result = CliRunner().invoke(main, [PR_URL, "--cache-ttl", "-1"])
        assert result.exit_code == 2

    def test_env_applies_when_flag_absent(self, mocker, monkeypatch):
        monkeypatch.setenv("REVIEW_TUI_BOT", "env-bot")
        _, _, configs = _patch_loader(mocker)
        CliRunner().invoke(main, [PR_URL])
        assert configs[0].bot == "env-bot"

    def test_malformed_config_file_is_fatal(self, mocker, isolated_env):
        home, _ = isolated_env
        (home / ".prsweeprc").write_text("{oops")
        _, resolve, _ = _patch_loader(mocker)

        result = CliRunner().invoke(main, [PR_URL])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output
        resolve.assert_not_called()

    def test_config_directory_is_fatal(self, mocker, isolated_env):
        _, project = isolated_env
        (project / ".reviewtuirc").mkdir()
        _patch_loader(mocker)

        result = CliRunner().invoke(main, [PR_URL])

        assert result.exit_code == 1
        assert "Could not read config file" in result.output


class TestCLIWatch:
    def test_reload_then_quit(self, mocker):
        fetch, _, _ = _patch_loader(mocker)

        result = CliRunner().invoke(main, [PR_URL, "--watch", "--no-cache"], input="rq")

        assert result.exit_code == 0, result.output
        assert fetch.call_count == 2
        assert 'Press "r" to reload' in result.output

    def test_quit_immediately(self, mocker):
        fetch, _, _ = _patch_loader(mocker)
        result = CliRunner().invoke(main, [PR_URL, "--watch"], input="q")
        assert result.exit_code == 0
        assert fetch.call_count == 1

    def test_end_of_input_exits(self, mocker):
        _patch_loader(mocker)
        result = CliRunner().invoke(main, [PR_URL, "--watch"], input="")
        assert result.exit_code == 0


class TestBuildLoader:
    def test_uses_file_cache_when_enabled(self):
        loader = _build_loader(Config())
        assert isinstance(loader._cache, FileCommentCache)

    def test_no_cache_when_disabled(self):
        loader = _build_loader(Config(cache=CacheConfig(enabled=False)))
        assert loader._cache is None
