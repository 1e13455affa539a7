"""Responses API format: a flat ``body.input`` array of typed items.

- ``type="function_call"`` items carry tool calls
- ``type="function_call_output"`` items carry tool results
- ``type="message"`` items carry user/assistant turns
"""

from __future__ import annotations

from typing import Any

from ..core.protection import is_protected_tool_name
from ..session.state import SessionState, ToolParameterEntry, ToolStatus
from .base import BodyFormat, ToolOutput, append_text, is_ignored_user_message, parse_arguments
from .tracker import ToolTracker


class OpenAIResponsesFormat:
    format = BodyFormat.OPENAI_RESPONSES

    def detect(self, body: dict) -> bool:
        return isinstance(body.get("input"), list)

    def get_data_array(self, body: dict) -> list[dict]:
        return body["input"]

    def cache_tool_parameters(self, items: list[dict], state: SessionState) -> int:
        cached = 0
        for item in items:
            if item.get("type") == "function_call" and item.get("call_id"):
                state.tool_parameters[str(item["call_id"]).lower()] = ToolParameterEntry(
                    tool=str(item.get("name", "")),
                    parameters=parse_arguments(item.get("arguments")),
                    status=ToolStatus.PENDING,
                )
                cached += 1
        for item in _outputs(items):
            entry = state.tool_parameters.get(str(item["call_id"]).lower())
            if entry is not None:
                entry.status = ToolStatus.COMPLETED
        return cached

    def inject_synth(self, items: list[dict], instruction: str, nudge_text: str) -> bool:
        injected = bool(instruction) and self._append_to_last_user(items, instruction)
        if nudge_text:
            items.append({"type": "message", "role": "user", "content": nudge_text})
            injected = True
        return injected

    def track_new_tool_results(
        self, items: list[dict], tracker: ToolTracker, protected_tools: set[str]
    ) -> int:
        names = {
            str(i["call_id"]).lower(): i.get("name")
            for i in items if i.get("type") == "function_call" and i.get("call_id")
        }
        return tracker.observe(
            str(item["call_id"]) for item in _outputs(items)
            if not is_protected_tool_name(
                item.get("name") or names.get(str(item["call_id"]).lower()), protected_tools
            )
        )

    def inject_prunable_list(self, items: list[dict], injection: str) -> bool:
        return bool(injection) and self._append_to_last_user(items, injection)

    def extract_tool_outputs(self, items: list[dict], state: SessionState) -> list[ToolOutput]:
        outputs: list[ToolOutput] = []
        for item in _outputs(items):
            key = str(item["call_id"]).lower()
            entry = state.tool_parameters.get(key)
            outputs.append(ToolOutput(id=key, tool_name=entry.tool if entry else item.get("name")))
        return outputs

    def replace_tool_output(
        self, items: list[dict], tool_id: str, pruned_message: str, state: SessionState
    ) -> bool:
        target = tool_id.lower()
        replaced = False
        for i, item in enumerate(items):
            if (
                item.get("type") == "function_call_output"
                and str(item.get("call_id", "")).lower() == target
            ):
                items[i] = {**item, "output": pruned_message}
                replaced = True
        return replaced

    def has_tool_outputs(self, items: list[dict]) -> bool:
        return any(item.get("type") == "function_call_output" for item in items)

    def get_log_metadata(self, items: list[dict], replaced_count: int, url: str) -> dict[str, Any]:
        return {
            "url": url,
            "replacedCount": replaced_count,
            "totalItems": len(items),
            "format": self.format.value,
        }

    def _append_to_last_user(self, items: list[dict], text: str) -> bool:
        for item in reversed(items):
            if item.get("type", "message") != "message" or item.get("role") != "user":
                continue
            if is_ignored_user_message(item):
                continue
            changed, content = append_text(item.get("content"), text, "input_text")
            if changed:
                item["content"] = content
            return changed
        return False


def _outputs(items: list[dict]) -> list[dict]:
    return [i for i in items if i.get("type") == "function_call_output" and i.get("call_id")]


ADAPTER = OpenAIResponsesFormat()
