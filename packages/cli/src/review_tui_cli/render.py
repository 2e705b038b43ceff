"""Terminal rendering of a load's display state."""

from __future__ import annotations

import json

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from review_tui_core.config import Config
from review_tui_core.loader import DisplayState, LoadFailure, LoadingState, LoadSuccess


def _status_lines(state: DisplayState, config: Config) -> list[Text]:
    if isinstance(state, LoadingState):
        return [Text(state.status, style="blue")]

    if isinstance(state, LoadFailure):
        return [Text(state.status, style="red"), Text(state.reason, style="red")]

    lines = [
        Text(state.status, style="green"),
        Text(f"Total review comments: {state.total}"),
        Text(f"Bot comments ({config.bot or 'none'}): {state.bot_total}"),
        Text(f"Cache: {'hit' if state.cache_hit else 'miss'}"),
        Text(f"Auth: {state.auth_source.label}"),
    ]
    if state.warning:
        lines.append(Text(state.warning, style="yellow"))
    return lines


def render_state(console: Console, pr_url: str, state: DisplayState, config: Config, watch: bool = False) -> None:
    console.print(Text("Review TUI", style="bold green"))
    console.print(Text.assemble("PR URL: ", (pr_url, "cyan")))
    if watch:
        console.print(Text('Press "r" to reload, "q" to exit.', style="yellow"))

    console.print(Panel(Group(*_status_lines(state, config)), title="Status", title_align="left"))
    console.print(
        Panel(
            Text(json.dumps(config.redacted(), indent=2)),
            title="Resolved config",
            title_align="left",
        )
    )


def is_success(state: DisplayState) -> bool:
    return isinstance(state, LoadSuccess)
