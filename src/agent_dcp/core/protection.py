"""Protection policy — which tool outputs must never be pruned."""

from __future__ import annotations

import re
from functools import lru_cache

from ..config import DcpConfig
from .types import Message

# The pruning tools themselves; pruning them would erase their own results.
DEFAULT_PROTECTED_TOOLS = frozenset({"dcp_prune", "dcp_distill"})


def is_protected(message: Message, config: DcpConfig) -> bool:
    """True when ``message`` is exempt by tool name or by file-path glob."""
    tool_name = (message.tool_name or "").lower()
    if tool_name in DEFAULT_PROTECTED_TOOLS:
        return True
    if tool_name and tool_name in {name.lower() for name in config.protected_tools}:
        return True

    file_path = infer_file_path(message)
    if not file_path:
        return False
    return any(glob_match(file_path, pattern) for pattern in config.protected_file_patterns)


def is_protected_tool_name(tool_name: str | None, protected_tools: set[str] | frozenset[str]) -> bool:
    """Name-only check used on wire bodies, where no Message exists."""
    name = (tool_name or "").lower()
    return name in DEFAULT_PROTECTED_TOOLS or name in protected_tools


def infer_file_path(message: Message) -> str:
    """File path a tool call touched: direct field, then input.filePath, then input.path."""
    if isinstance(message.file_path, str):
        return message.file_path
    tool_input = message.input
    if isinstance(tool_input, dict):
        for key in ("filePath", "path"):
            value = tool_input.get(key)
            if isinstance(value, str):
                return value
    return ""


def glob_match(value: str, pattern: str) -> bool:
    """Anchored glob: ``*`` stays inside a path segment, ``**`` crosses ``/``."""
    return _compile_glob(pattern).match(value) is not None


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    regex = ""
    i = 0
    while i < len(pattern):
        if pattern.startswith("**", i):
            regex += ".*"
            i += 2
        elif pattern[i] == "*":
            regex += "[^/]*"
            i += 1
        else:
            regex += re.escape(pattern[i])
            i += 1
    return re.compile(f"^{regex}$", re.DOTALL)
