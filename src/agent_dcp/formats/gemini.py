"""Gemini format: ``body.contents[].parts[]`` with ``functionCall``/``functionResponse``.

Gemini has no tool call IDs. Calls and responses are keyed by the pseudo-ID
``gemini:<name>:<ordinal>``, the ordinal counting occurrences in document
order, so the n-th response pairs with the n-th call.
"""

from __future__ import annotations

from typing import Any, Iterator

from ..core.protection import is_protected_tool_name
from ..session.state import SessionState, ToolParameterEntry, ToolStatus
from .base import BodyFormat, ToolOutput
from .tracker import ToolTracker


def pseudo_id(name: str | None, ordinal: int) -> str:
    return f"gemini:{(name or 'unknown').lower()}:{ordinal}"


class GeminiFormat:
    format = BodyFormat.GEMINI

    def detect(self, body: dict) -> bool:
        return isinstance(body.get("contents"), list)

    def get_data_array(self, body: dict) -> list[dict]:
        return body["contents"]

    def cache_tool_parameters(self, items: list[dict], state: SessionState) -> int:
        cached = 0
        for ordinal, (_content, _index, call) in enumerate(_parts_with(items, "functionCall")):
            state.tool_parameters[pseudo_id(call.get("name"), ordinal)] = ToolParameterEntry(
                tool=str(call.get("name", "")),
                parameters=call.get("args"),
                status=ToolStatus.PENDING,
            )
            cached += 1
        for ordinal, (_content, _index, resp) in enumerate(_parts_with(items, "functionResponse")):
            entry = state.tool_parameters.get(pseudo_id(resp.get("name"), ordinal))
            if entry is not None:
                entry.status = ToolStatus.COMPLETED
        return cached

    def inject_synth(self, items: list[dict], instruction: str, nudge_text: str) -> bool:
        injected = bool(instruction) and self._append_to_last_user(items, instruction)
        if nudge_text:
            items.append({"role": "user", "parts": [{"text": nudge_text}]})
            injected = True
        return injected

    def track_new_tool_results(
        self, items: list[dict], tracker: ToolTracker, protected_tools: set[str]
    ) -> int:
        return tracker.observe(
            pseudo_id(resp.get("name"), ordinal)
            for ordinal, (_c, _i, resp) in enumerate(_parts_with(items, "functionResponse"))
            if not is_protected_tool_name(resp.get("name"), protected_tools)
        )

    def inject_prunable_list(self, items: list[dict], injection: str) -> bool:
        return bool(injection) and self._append_to_last_user(items, injection)

    def extract_tool_outputs(self, items: list[dict], state: SessionState) -> list[ToolOutput]:
        return [
            ToolOutput(id=pseudo_id(resp.get("name"), ordinal), tool_name=resp.get("name"))
            for ordinal, (_c, _i, resp) in enumerate(_parts_with(items, "functionResponse"))
        ]

    def replace_tool_output(
        self, items: list[dict], tool_id: str, pruned_message: str, state: SessionState
    ) -> bool:
        target = tool_id.lower()
        replaced = False
        for ordinal, (content, index, resp) in enumerate(_parts_with(items, "functionResponse")):
            if pseudo_id(resp.get("name"), ordinal) != target:
                continue
            part = content["parts"][index]
            content["parts"][index] = {
                **part,
                "functionResponse": {
                    **resp,
                    "response": {"name": resp.get("name"), "content": pruned_message},
                },
            }
            replaced = True
        return replaced

    def has_tool_outputs(self, items: list[dict]) -> bool:
        return any(True for _ in _parts_with(items, "functionResponse"))

    def get_log_metadata(self, items: list[dict], replaced_count: int, url: str) -> dict[str, Any]:
        return {
            "url": url,
            "replacedCount": replaced_count,
            "totalContents": len(items),
            "format": self.format.value,
        }

    def _append_to_last_user(self, items: list[dict], text: str) -> bool:
        for content in reversed(items):
            parts = content.get("parts")
            if content.get("role") != "user" or not isinstance(parts, list):
                continue
            # function responses travel as user turns; skip those
            if parts and all(isinstance(p, dict) and "functionResponse" in p for p in parts):
                continue
            if any(isinstance(p, dict) and isinstance(p.get("text"), str) and text in p["text"] for p in parts):
                return False
            parts.append({"text": text})
            return True
        return False


def _parts_with(items: list[dict], key: str) -> Iterator[tuple[dict, int, dict]]:
    """(content, part index, payload) for every part carrying ``key``."""
    for content in items:
        parts = content.get("parts")
        if not isinstance(parts, list):
            continue
        for index, part in enumerate(parts):
            if isinstance(part, dict) and isinstance(part.get(key), dict):
                yield content, index, part[key]


ADAPTER = GeminiFormat()
