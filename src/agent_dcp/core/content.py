"""Flatten heterogeneous message parts into a searchable text corpus."""

from __future__ import annotations

import json
from typing import Any

from .types import Message


def message_parts(message: Message | dict) -> list[dict]:
    """Return the typed parts of a message.

    Accepts host messages that keep parts under ``parts`` as well as
    ``content`` holding either a part list or a bare string.
    """
    raw = message.get("parts") if isinstance(message, dict) else getattr(message, "parts", None)
    if raw is None:
        raw = message.get("content") if isinstance(message, dict) else message.content
    if isinstance(raw, str):
        return [{"type": "text", "text": raw}]
    if isinstance(raw, list):
        return [p for p in raw if isinstance(p, dict)]
    return []


def extract_message_content(message: Message | dict) -> str:
    """Concatenate every matchable piece of a message, space-joined.

    Used only as a matching corpus. Nothing is truncated.
    """
    content = ""
    for part in message_parts(message):
        kind = part.get("type")
        if kind in ("text", "reasoning"):
            content += _piece(part.get("text"))
        elif kind == "tool":
            content += _tool_content(part)
        elif kind == "compaction":
            content += _piece(part.get("summary"))
        elif kind == "subtask":
            content += _piece(part.get("summary"))
            content += _piece(part.get("result"))
    return content


def _tool_content(part: dict) -> str:
    state = part.get("state")
    if not isinstance(state, dict):
        return ""
    out = ""
    status = state.get("status")
    if status == "completed":
        out += _piece(state.get("output"))
    elif status == "error":
        out += _piece(state.get("error"))

    tool_input = state.get("input")
    if tool_input:
        if isinstance(tool_input, str):
            out += " " + tool_input
        else:
            out += " " + json.dumps(tool_input, separators=(",", ":"))
    return out


def _piece(value: Any) -> str:
    return " " + value if isinstance(value, str) else ""


def tool_call_ids(message: Message | dict) -> list[str]:
    """Unique ``callID``s of the ``tool`` parts of a message, in order."""
    ids: list[str] = []
    for part in message_parts(message):
        call_id = part.get("callID")
        if part.get("type") == "tool" and isinstance(call_id, str) and call_id and call_id not in ids:
            ids.append(call_id)
    return ids
