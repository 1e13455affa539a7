"""`/dcp` text command — context, stats, sweep [n], help.

Output lines are a stable plain-text contract; callers match on substrings
such as ``prunable count=N chars=C estTokens=T``.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from .config import DcpConfig
from .core.engine import get_prunable_inventory, sweep
from .core.state import DcpState
from .core.types import Message
from .core.view import create_transformed_view, total_chars
from .tools import as_messages

log = logging.getLogger(__name__)

USAGE = "usage: /dcp context | /dcp stats | /dcp sweep [n] | /dcp help"
UNKNOWN = "unknown /dcp subcommand; expected context, stats, sweep [n], or help"
DISABLED = "dcp commands are disabled by config"

_PREFIX = re.compile(r"^/dcp\s*", re.IGNORECASE)


def format_help() -> str:
    lines = [
        "╭───────────────────────────────────────────────────────────╮",
        "│                      DCP Commands                         │",
        "╰───────────────────────────────────────────────────────────╯",
        "",
        "  /dcp context      Show token usage breakdown for current session",
        "  /dcp stats        Show DCP pruning statistics",
        "  /dcp sweep [n]    Prune tools since last user message, or last n tools",
        "",
    ]
    return "\n".join(lines)


def format_context(messages: Sequence[Message], state: DcpState, config: DcpConfig) -> str:
    view = create_transformed_view(messages, state)
    inventory = get_prunable_inventory(messages, state, config)
    raw_chars = total_chars(messages)
    view_chars = total_chars(view)
    prunable_chars = sum(e.chars for e in inventory)
    prunable_tokens = sum(e.estimated_tokens for e in inventory)

    lines = [
        f"context rawMessages={len(messages)} viewMessages={len(view)} "
        f"rawChars={raw_chars} viewChars={view_chars} savedChars={raw_chars - view_chars}",
        f"prunable count={len(inventory)} chars={prunable_chars} estTokens={prunable_tokens}",
    ]
    for entry in inventory:
        name = entry.tool_name or entry.role or "unknown"
        lines.append(f"#{entry.id} {name} chars={entry.chars} estTokens={entry.estimated_tokens}")
    return "\n".join(lines)


def format_stats(state: DcpState) -> str:
    c = state.counters
    return (
        f"stats prunedMessages={c.pruned_messages} prunedChars={c.pruned_chars} "
        f"distillations={c.distillations} sweeps={c.sweeps}"
    )


class CommandHandler:
    """Dispatches `/dcp ...` text against one session's state."""

    def __init__(self, state: DcpState, config: DcpConfig) -> None:
        self._state = state
        self._config = config

    def __call__(self, raw_input: str, raw_messages: Sequence[Message | dict] | None) -> str:
        text = raw_input.strip() if isinstance(raw_input, str) else ""
        args = _PREFIX.sub("", text).split()
        subcommand = args[0].lower() if args else ""

        if not self._config.commands.enabled:
            return DISABLED
        if not subcommand:
            return USAGE

        messages = as_messages(raw_messages)
        if subcommand == "context":
            return format_context(messages, self._state, self._config)
        if subcommand == "stats":
            return format_stats(self._state)
        if subcommand == "help":
            return format_help()
        if subcommand == "sweep":
            limit = _parse_limit(args[1] if len(args) > 1 else "")
            result = sweep(messages, self._state, self._config, limit)
            log.info("Sweep command pruned %d of %d candidates", len(result.pruned_ids), result.candidate_count)
            return " ".join([
                f"sweep pruned={len(result.pruned_ids)}",
                f"protected={len(result.protected_ids)}",
                f"candidates={result.candidate_count}",
                f"limit={result.used_limit}" if result.used_limit else "limit=all",
            ])
        return UNKNOWN


def _parse_limit(raw: str) -> int | None:
    match = re.match(r"^\d+", raw)
    if not match:
        return None
    value = int(match.group())
    return value if value > 0 else None
