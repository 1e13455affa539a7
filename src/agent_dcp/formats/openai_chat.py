"""Chat-completions format: ``body.messages`` of role-tagged turns.

Tool results are ``role="tool"`` messages keyed by ``tool_call_id``, or
Anthropic-style ``tool_result`` parts inside user messages keyed by
``tool_use_id``.
"""

from __future__ import annotations

from typing import Any, Iterator

from ..core.protection import is_protected_tool_name
from ..session.state import SessionState, ToolParameterEntry, ToolStatus
from .base import (
    BodyFormat,
    ToolOutput,
    append_text,
    is_ignored_user_message,
    parse_arguments,
)
from .tracker import ToolTracker


class OpenAIChatFormat:
    format = BodyFormat.OPENAI_CHAT

    def detect(self, body: dict) -> bool:
        return isinstance(body.get("messages"), list)

    def get_data_array(self, body: dict) -> list[dict]:
        return body["messages"]

    def cache_tool_parameters(self, items: list[dict], state: SessionState) -> int:
        cached = 0
        for msg in items:
            if msg.get("role") == "assistant":
                for call_id, name, params in _tool_calls(msg):
                    state.tool_parameters[call_id.lower()] = ToolParameterEntry(
                        tool=name, parameters=params, status=ToolStatus.PENDING,
                    )
                    cached += 1
        for call_id, _name, is_error, content in _results(items):
            entry = state.tool_parameters.get(call_id.lower())
            if entry is None:
                continue
            entry.status = ToolStatus.ERROR if is_error else ToolStatus.COMPLETED
            entry.error = content if is_error and isinstance(content, str) else None
        return cached

    def inject_synth(self, items: list[dict], instruction: str, nudge_text: str) -> bool:
        injected = bool(instruction) and self._append_to_last_user(items, instruction)
        if nudge_text:
            items.append({"role": "user", "content": nudge_text})
            injected = True
        return injected

    def track_new_tool_results(
        self, items: list[dict], tracker: ToolTracker, protected_tools: set[str]
    ) -> int:
        names = _call_names(items)
        return tracker.observe(
            call_id for call_id, name, _err, _content in _results(items)
            if not is_protected_tool_name(name or names.get(call_id.lower()), protected_tools)
        )

    def inject_prunable_list(self, items: list[dict], injection: str) -> bool:
        return bool(injection) and self._append_to_last_user(items, injection)

    def extract_tool_outputs(self, items: list[dict], state: SessionState) -> list[ToolOutput]:
        names = _call_names(items)
        outputs: list[ToolOutput] = []
        for call_id, name, _err, _content in _results(items):
            key = call_id.lower()
            entry = state.tool_parameters.get(key)
            outputs.append(ToolOutput(id=key, tool_name=entry.tool if entry else name or names.get(key)))
        return outputs

    def replace_tool_output(
        self, items: list[dict], tool_id: str, pruned_message: str, state: SessionState
    ) -> bool:
        target = tool_id.lower()
        replaced = False
        for i, msg in enumerate(items):
            if msg.get("role") == "tool" and str(msg.get("tool_call_id", "")).lower() == target:
                items[i] = {**msg, "content": pruned_message}
                replaced = True
            elif msg.get("role") == "user" and isinstance(msg.get("content"), list):
                parts = msg["content"]
                new_parts = [
                    {**p, "content": pruned_message} if _is_result_part(p, target) else p
                    for p in parts
                ]
                if any(a is not b for a, b in zip(parts, new_parts)):
                    items[i] = {**msg, "content": new_parts}
                    replaced = True
        return replaced

    def has_tool_outputs(self, items: list[dict]) -> bool:
        return any(True for _ in _results(items))

    def get_log_metadata(self, items: list[dict], replaced_count: int, url: str) -> dict[str, Any]:
        return {
            "url": url,
            "replacedCount": replaced_count,
            "totalMessages": len(items),
            "format": self.format.value,
        }

    def _append_to_last_user(self, items: list[dict], text: str) -> bool:
        for msg in reversed(items):
            if msg.get("role") != "user" or is_ignored_user_message(msg):
                continue
            changed, content = append_text(msg.get("content"), text, "text")
            if changed:
                msg["content"] = content
            return changed
        return False


def _tool_calls(msg: dict) -> Iterator[tuple[str, str, Any]]:
    for call in msg.get("tool_calls") or []:
        if not isinstance(call, dict) or not call.get("id"):
            continue
        fn = call.get("function") or {}
        yield str(call["id"]), str(fn.get("name", "")), parse_arguments(fn.get("arguments"))
    content = msg.get("content")
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict) and part.get("type") == "tool_use" and part.get("id"):
                yield str(part["id"]), str(part.get("name", "")), part.get("input")


def _call_names(items: list[dict]) -> dict[str, str]:
    return {
        call_id.lower(): name
        for msg in items if msg.get("role") == "assistant"
        for call_id, name, _params in _tool_calls(msg)
    }


def _results(items: list[dict]) -> Iterator[tuple[str, str | None, bool, Any]]:
    """(call_id, tool_name, is_error, content) for every tool result, in order."""
    for msg in items:
        role = msg.get("role")
        if role == "tool" and msg.get("tool_call_id"):
            yield str(msg["tool_call_id"]), msg.get("name"), False, msg.get("content")
        elif role == "user" and isinstance(msg.get("content"), list):
            for part in msg["content"]:
                if isinstance(part, dict) and part.get("type") == "tool_result" and part.get("tool_use_id"):
                    yield (
                        str(part["tool_use_id"]),
                        None,
                        bool(part.get("is_error")),
                        part.get("content"),
                    )


def _is_result_part(part: Any, target: str) -> bool:
    return (
        isinstance(part, dict)
        and part.get("type") == "tool_result"
        and str(part.get("tool_use_id", "")).lower() == target
    )


ADAPTER = OpenAIChatFormat()
