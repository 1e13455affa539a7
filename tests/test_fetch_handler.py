"""Tests for outgoing request rewriting."""

from __future__ import annotations

from agent_dcp.config import DcpConfig, NudgeConfig
from agent_dcp.core.engine import prune_by_ids
from agent_dcp.core.types import Message
from agent_dcp.fetch_handler import (
    FetchHandlerContext,
    format_prunable_list,
    handle_request_body,
    pruned_replacements,
)
from agent_dcp.formats.base import PRUNED_CONTENT_MESSAGE, ToolOutput
from agent_dcp.prompts import SynthPrompts
from agent_dcp.session.registry import SessionContext


def _chat_body(n_results: int = 2) -> dict:
    calls = [
        {"id": f"call_{i}", "function": {"name": "bash", "arguments": "{}"}}
        for i in range(1, n_results + 1)
    ]
    results = [
        {"role": "tool", "tool_call_id": f"call_{i}", "content": f"output {i}"}
        for i in range(1, n_results + 1)
    ]
    return {
        "messages": [
            {"role": "user", "content": "do things"},
            {"role": "assistant", "content": None, "tool_calls": calls},
            *results,
        ],
    }


def _ctx(config: DcpConfig | None = None, prompts: SynthPrompts | None = None) -> FetchHandlerContext:
    return FetchHandlerContext(
        session=SessionContext(session_id="s1"),
        config=config or DcpConfig(),
        prompts=prompts or SynthPrompts(synth_instruction="SYNTH", nudge_instruction="NUDGE"),
    )


def test_unknown_body_passes_through() -> None:
    body = {"prompt": "hello"}
    result = handle_request_body(body, _ctx())
    assert result.modified is False
    assert result.body is body
    assert body == {"prompt": "hello"}


def test_session_pruned_ids_get_generic_text() -> None:
    ctx = _ctx()
    ctx.session.session.prune.tool_ids.append("call_1")
    body = _chat_body()

    result = handle_request_body(body, ctx, "https://api.example/v1/chat")

    assert result.modified is True
    assert result.replaced_count == 1
    assert body["messages"][2]["content"] == PRUNED_CONTENT_MESSAGE
    assert body["messages"][3]["content"] == "output 2"
    assert len(body["messages"]) == 4


def test_engine_prunes_get_placeholder() -> None:
    ctx = _ctx()
    messages = [Message(id="call_2", role="tool", tool_name="bash", content="output 2")]
    prune_by_ids(messages, ctx.session.dcp, ctx.config, ["call_2"], "sweep")
    ctx.session.session.prune.tool_ids.append("call_2")
    body = _chat_body()

    handle_request_body(body, ctx)

    assert body["messages"][3]["content"] == "[dcp-pruned id=call_2 reason=sweep]"


def test_extra_pruned_ids_from_other_sessions() -> None:
    ctx = _ctx()
    ctx.extra_pruned_ids = {"CALL_2"}
    body = _chat_body()
    result = handle_request_body(body, ctx)
    assert result.replaced_count == 1
    assert body["messages"][3]["content"] == PRUNED_CONTENT_MESSAGE


def test_synth_and_prunable_list_injected_into_last_user() -> None:
    body = _chat_body()
    result = handle_request_body(body, _ctx())
    user = body["messages"][0]["content"]
    assert result.modified is True
    assert "SYNTH" in user
    assert "<prunable-tools>\n- call_1: bash\n- call_2: bash\n</prunable-tools>" in user


def test_prunable_list_excludes_pruned_and_protected() -> None:
    ctx = _ctx(config=DcpConfig(protected_tools=["bash"]))
    body = _chat_body()
    handle_request_body(body, ctx)
    assert "<prunable-tools>" not in body["messages"][0]["content"]


def test_prunable_list_can_be_disabled() -> None:
    prompts = SynthPrompts(synth_instruction="", nudge_instruction="", list_prunable=False)
    body = _chat_body()
    result = handle_request_body(body, _ctx(prompts=prompts))
    assert result.modified is False
    assert body["messages"][0]["content"] == "do things"


def test_nudge_fires_once_per_window() -> None:
    ctx = _ctx(config=DcpConfig(nudge=NudgeConfig(enabled=True, frequency=3)))
    nudged = []
    for n in range(1, 6):
        result = handle_request_body(_chat_body(n), ctx)
        nudged.append(result.nudged)
        if result.nudged:
            assert result.body["messages"][-1] == {"role": "user", "content": "NUDGE"}
    assert nudged == [False, False, True, False, False]


def test_nudge_disabled() -> None:
    ctx = _ctx(config=DcpConfig(nudge=NudgeConfig(enabled=False, frequency=1)))
    assert handle_request_body(_chat_body(3), ctx).nudged is False


def test_pruned_replacements_prefers_placeholder() -> None:
    ctx = _ctx()
    ctx.extra_pruned_ids = {"t1"}
    messages = [Message(id="t1", role="tool", content="x")]
    prune_by_ids(messages, ctx.session.dcp, ctx.config, ["t1"], "manual")
    assert pruned_replacements(ctx) == {"t1": "[dcp-pruned id=t1 reason=manual]"}


def test_format_prunable_list() -> None:
    text = format_prunable_list([ToolOutput(id="a", tool_name="grep"), ToolOutput(id="b")])
    assert text == "<prunable-tools>\n- a: grep\n- b: unknown\n</prunable-tools>"


def test_gemini_body_rewritten() -> None:
    ctx = _ctx()
    ctx.session.session.prune.tool_ids.append("gemini:search:0")
    body = {
        "contents": [
            {"role": "user", "parts": [{"text": "go"}]},
            {"role": "model", "parts": [{"functionCall": {"name": "search", "args": {}}}]},
            {"role": "user", "parts": [{"functionResponse": {"name": "search", "response": {"r": 1}}}]},
        ],
    }
    result = handle_request_body(body, ctx)
    assert result.replaced_count == 1
    response = body["contents"][2]["parts"][0]["functionResponse"]["response"]
    assert response == {"name": "search", "content": PRUNED_CONTENT_MESSAGE}
