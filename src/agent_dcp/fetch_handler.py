"""Outgoing request rewriting — apply session pruning to a provider request body."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .config import DcpConfig
from .core.protection import is_protected_tool_name
from .core.view import placeholder_for
from .formats.base import PRUNED_CONTENT_MESSAGE, ToolOutput, detect_format
from .formats.tracker import crossed_nudge_boundary
from .prompts import SynthPrompts
from .session.registry import SessionContext

log = logging.getLogger(__name__)


@dataclass
class FetchHandlerContext:
    """What one request needs: the session's state, config and prompt texts."""

    session: SessionContext
    config: DcpConfig
    prompts: SynthPrompts = field(default_factory=SynthPrompts)
    # pruned tool IDs from other sessions the host shares history with
    extra_pruned_ids: set[str] = field(default_factory=set)


@dataclass
class FetchHandlerResult:
    modified: bool
    body: Any
    replaced_count: int = 0
    nudged: bool = False


def pruned_replacements(ctx: FetchHandlerContext) -> dict[str, str]:
    """Lower-cased tool ID → replacement text for everything pruned."""
    replacements = {tool_id.lower(): PRUNED_CONTENT_MESSAGE for tool_id in ctx.extra_pruned_ids}
    for tool_id in ctx.session.session.prune.tool_ids:
        replacements[tool_id.lower()] = PRUNED_CONTENT_MESSAGE
    for message_id, record in ctx.session.dcp.pruned_by_id.items():
        placeholder = placeholder_for(message_id, record)
        for tool_id in (message_id, *record.tool_call_ids):
            replacements[tool_id.lower()] = placeholder
    return replacements


def format_prunable_list(outputs: list[ToolOutput]) -> str:
    lines = ["<prunable-tools>"]
    lines.extend(f"- {o.id}: {o.tool_name or 'unknown'}" for o in outputs)
    lines.append("</prunable-tools>")
    return "\n".join(lines)


def handle_request_body(body: Any, ctx: FetchHandlerContext, url: str = "") -> FetchHandlerResult:
    """Rewrite ``body`` in place for the session in ``ctx``.

    Unknown body shapes pass through untouched with ``modified=False``.
    """
    formatted = detect_format(body)
    if formatted is None:
        return FetchHandlerResult(modified=False, body=body)

    adapter, items = formatted.adapter, formatted.items
    state = ctx.session.session
    tracker = ctx.session.tracker
    protected = {name.lower() for name in ctx.config.protected_tools}
    modified = False

    adapter.cache_tool_parameters(items, state)

    prev_count = tracker.tool_result_count
    new_results = adapter.track_new_tool_results(items, tracker, protected)
    nudge = ""
    if (
        ctx.config.nudge.enabled
        and new_results
        and crossed_nudge_boundary(prev_count, tracker.tool_result_count, ctx.config.nudge.frequency)
    ):
        nudge = ctx.prompts.nudge_instruction
    if adapter.inject_synth(items, ctx.prompts.synth_instruction, nudge):
        modified = True

    replacements = pruned_replacements(ctx)
    outputs = adapter.extract_tool_outputs(items, state)
    replaced = 0
    for tool_id in dict.fromkeys(o.id for o in outputs if o.id in replacements):
        if adapter.replace_tool_output(items, tool_id, replacements[tool_id], state):
            replaced += 1

    if ctx.prompts.list_prunable:
        prunable = [
            o for o in outputs
            if o.id not in replacements and not is_protected_tool_name(o.tool_name, protected)
        ]
        if prunable and adapter.inject_prunable_list(items, format_prunable_list(prunable)):
            modified = True

    if replaced:
        modified = True
        log.info("Replaced pruned tool outputs: %s", adapter.get_log_metadata(items, replaced, url))
    log.debug(
        "Request %s format=%s newResults=%d nudged=%s modified=%s",
        url, formatted.format.value, new_results, bool(nudge), modified,
    )
    return FetchHandlerResult(modified=modified, body=body, replaced_count=replaced, nudged=bool(nudge))
