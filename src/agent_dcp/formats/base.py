"""Wire-format capability contract and one-shot format detection.

A request body is classified once by ``detect_format``; everything after
that dispatches on the resulting ``FormattedBody`` and never re-sniffs the
shape.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, NamedTuple, Protocol, runtime_checkable

from pydantic import BaseModel

from ..session.state import SessionState
from .tracker import ToolTracker

PRUNED_CONTENT_MESSAGE = (
    "[Output removed to save context - information superseded or no longer needed]"
)


class BodyFormat(str, Enum):
    OPENAI_CHAT = "openai-chat"
    OPENAI_RESPONSES = "openai-responses"
    GEMINI = "gemini"


class ToolOutput(BaseModel):
    id: str
    tool_name: str | None = None


@runtime_checkable
class FormatAdapter(Protocol):
    """Operations every wire format supports."""

    format: BodyFormat

    def detect(self, body: dict) -> bool: ...

    def get_data_array(self, body: dict) -> list[dict]: ...

    def cache_tool_parameters(self, items: list[dict], state: SessionState) -> int: ...

    def inject_synth(self, items: list[dict], instruction: str, nudge_text: str) -> bool: ...

    def track_new_tool_results(
        self, items: list[dict], tracker: ToolTracker, protected_tools: set[str]
    ) -> int: ...

    def inject_prunable_list(self, items: list[dict], injection: str) -> bool: ...

    def extract_tool_outputs(self, items: list[dict], state: SessionState) -> list[ToolOutput]: ...

    def replace_tool_output(
        self, items: list[dict], tool_id: str, pruned_message: str, state: SessionState
    ) -> bool: ...

    def has_tool_outputs(self, items: list[dict]) -> bool: ...

    def get_log_metadata(self, items: list[dict], replaced_count: int, url: str) -> dict[str, Any]: ...


class FormattedBody(NamedTuple):
    """A request body tagged with its detected wire format."""

    format: BodyFormat
    adapter: FormatAdapter
    body: dict
    items: list[dict]


def detect_format(body: Any) -> FormattedBody | None:
    """Classify ``body``; None for anything that is not a known wire shape."""
    from . import gemini, openai_chat, openai_responses

    if not isinstance(body, dict):
        return None
    for adapter in (openai_chat.ADAPTER, openai_responses.ADAPTER, gemini.ADAPTER):
        if adapter.detect(body):
            return FormattedBody(adapter.format, adapter, body, adapter.get_data_array(body))
    return None


# -- Helpers shared by the adapters --


def is_ignored_user_message(msg: dict) -> bool:
    """User turns the host marked as ignored or synthetic."""
    if msg.get("role") != "user":
        return False
    info = msg.get("info")
    if msg.get("ignored") or msg.get("synthetic") or (isinstance(info, dict) and info.get("ignored")):
        return True
    content = msg.get("content")
    if isinstance(content, list) and content:
        return all(isinstance(p, dict) and p.get("ignored") for p in content)
    return False


def append_text(content: Any, text: str, part_type: str) -> tuple[bool, Any]:
    """Append ``text`` to string or part-list content unless already present.

    Returns ``(changed, new_content)``.
    """
    if isinstance(content, str):
        if text in content:
            return False, content
        return True, f"{content}\n\n{text}"
    if isinstance(content, list):
        for part in content:
            if (
                isinstance(part, dict)
                and part.get("type") == part_type
                and isinstance(part.get("text"), str)
                and text in part["text"]
            ):
                return False, content
        return True, [*content, {"type": part_type, "text": text}]
    return False, content


def parse_arguments(raw: Any) -> Any:
    """Tool-call arguments arrive as JSON strings in some formats."""
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw
