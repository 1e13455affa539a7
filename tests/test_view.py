"""Tests for the transformed view."""

from __future__ import annotations

import re

from agent_dcp.config import DcpConfig
from agent_dcp.core.engine import create_distillation, prune_by_ids
from agent_dcp.core.state import DcpState
from agent_dcp.core.types import Message
from agent_dcp.core.view import (
    create_transformed_view,
    format_placeholder,
    is_pruned_view_message,
    summarize_view,
    view_savings,
)

PLACEHOLDER_RE = re.compile(r"^\[dcp-pruned id=(\S+) reason=(\S+)( distilled=(\S+))?\]$")


def _messages() -> list[Message]:
    return [
        Message(id="u1", role="user", content="run it"),
        Message(id="t1", role="tool", tool_name="bash", content="SECRET BUILD LOG " * 10),
        Message(id="t2", role="tool", tool_name="bash", content="short", meta={"source": "host"}),
    ]


def test_placeholder_format() -> None:
    assert format_placeholder("t1", "sweep") == "[dcp-pruned id=t1 reason=sweep]"
    assert format_placeholder("t1", "distill", "distill-2") == (
        "[dcp-pruned id=t1 reason=distill distilled=distill-2]"
    )


def test_view_replaces_pruned_content_only() -> None:
    messages = _messages()
    state = DcpState()
    prune_by_ids(messages, state, DcpConfig(), ["t1"], "manual")

    view = create_transformed_view(messages, state)

    assert len(view) == len(messages)
    assert view[0].content == "run it"
    assert view[2].content == "short"
    match = PLACEHOLDER_RE.match(view[1].content)
    assert match is not None
    assert match.group(1) == "t1"
    assert match.group(2) == "manual"
    assert "SECRET BUILD LOG" not in str([m.model_dump() for m in view])


def test_view_never_mutates_input() -> None:
    messages = _messages()
    original = [m.model_dump() for m in messages]
    state = DcpState()
    prune_by_ids(messages, state, DcpConfig(), ["t1", "t2"], "manual")

    view = create_transformed_view(messages, state)
    view[0].meta = {"changed": True}

    assert [m.model_dump() for m in messages] == original


def test_pruned_view_message_carries_metadata() -> None:
    messages = _messages()
    state = DcpState()
    distill = create_distillation(messages, state, ["t2"], "summary")
    prune_by_ids(messages, state, DcpConfig(), ["t2"], "distill", distillation_id=distill.id)

    view = create_transformed_view(messages, state)

    assert view[2].meta["source"] == "host"
    assert view[2].meta["dcp"] == {
        "pruned": True,
        "originalID": "t2",
        "reason": "distill",
        "distillationID": "distill-1",
    }
    assert view[2].content.endswith("distilled=distill-1]")
    assert is_pruned_view_message(view[2]) is True
    assert is_pruned_view_message(view[1]) is False


def test_view_refreshes_id_map() -> None:
    messages = _messages()
    state = DcpState()
    prune_by_ids(messages, state, DcpConfig(), ["t1"], "manual")
    create_transformed_view(messages, state)
    assert state.id_map["t1"].pruned is True
    assert state.id_map["t2"].pruned is False
    assert state.id_map["u1"].transformed_id == "u1"


def test_view_savings_and_summary() -> None:
    messages = _messages()
    state = DcpState()
    prune_by_ids(messages, state, DcpConfig(), ["t1"], "manual")
    view = create_transformed_view(messages, state)

    saved_chars, saved_tokens = view_savings(messages, view)
    assert saved_chars == len("SECRET BUILD LOG " * 10) - len(view[1].content)
    assert saved_tokens > 0

    summary = summarize_view(messages, state, DcpConfig())
    assert summary.total_messages == 3
    assert summary.pruned_messages == 1
    assert summary.prunable_inventory_size == 1


def test_view_drops_host_parts_of_pruned_message() -> None:
    message = Message.model_validate({
        "id": "t1", "role": "tool", "toolName": "bash",
        "parts": [{"type": "text", "text": "SECRET OUTPUT"}],
    })
    state = DcpState()
    prune_by_ids([message], state, DcpConfig(), ["t1"], "manual")

    view = create_transformed_view([message], state)

    assert "SECRET OUTPUT" not in str(view[0].model_dump())
    assert view[0].content == "[dcp-pruned id=t1 reason=manual]"
    # the caller's message keeps its parts
    assert message.model_extra["parts"][0]["text"] == "SECRET OUTPUT"
