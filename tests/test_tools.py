"""Tests for the dcp_prune and dcp_distill tool handlers."""

from __future__ import annotations

from agent_dcp.config import DcpConfig
from agent_dcp.core.state import DcpState
from agent_dcp.prompts import EMPTY_DISTILLATION
from agent_dcp.tools import TOOL_DEFINITIONS, DcpTools, as_messages


def _runtime_messages() -> list[dict]:
    return [
        {"id": "u1", "role": "user", "content": "start"},
        {"id": "t1", "role": "tool", "toolName": "bash", "content": "aaa"},
        {"id": "t2", "role": "tool", "toolName": "bash", "content": "bbb"},
    ]


def test_tool_definitions_schemas() -> None:
    assert list(TOOL_DEFINITIONS) == ["dcp_prune", "dcp_distill"]
    assert TOOL_DEFINITIONS["dcp_prune"]["parameters"]["properties"]["ids"]["type"] == "array"
    assert TOOL_DEFINITIONS["dcp_distill"]["parameters"]["properties"]["targets"]["type"] == "array"


def test_as_messages_drops_entries_without_id() -> None:
    messages = as_messages([{"id": "a", "role": "user"}, {"role": "tool"}, "junk", {"id": 3}])
    assert [m.id for m in messages] == ["a"]
    assert as_messages(None) == []


def test_as_messages_accepts_string_input() -> None:
    messages = as_messages([{"id": "t1", "role": "tool", "toolName": "bash", "input": "ls -la"}])
    assert [m.input for m in messages] == ["ls -la"]


def test_as_messages_skips_entries_that_fail_validation(caplog) -> None:
    raw = [
        {"id": "u1", "role": "user", "content": "go"},
        {"id": "bad", "role": "tool", "meta": "not a mapping"},
        {"id": "t1", "role": "tool", "toolName": "bash", "content": "out"},
    ]
    with caplog.at_level("WARNING", logger="agent_dcp.tools"):
        messages = as_messages(raw)
    assert [m.id for m in messages] == ["u1", "t1"]
    assert "bad" in caplog.text


def test_sweep_with_string_tool_input() -> None:
    tools = DcpTools(DcpState(), DcpConfig())
    messages = [
        {"id": "u1", "role": "user", "content": "start"},
        {"id": "t1", "role": "tool", "toolName": "bash", "input": "ls -la", "content": "total 0"},
    ]
    result = tools.dcp_prune({}, messages)
    assert result["ok"] is True
    assert result["prunedIDs"] == ["t1"]


def test_prune_inventory_ids_then_sweep() -> None:
    state = DcpState()
    tools = DcpTools(state, DcpConfig())
    messages = _runtime_messages()

    targeted = tools.dcp_prune({"ids": ["2"]}, messages)
    assert targeted["ok"] is True
    assert targeted["mode"] == "inventory"
    assert targeted["prunedIDs"] == ["t2"]
    assert targeted["inventoryIDs"] == ["2"]
    assert targeted["unresolvedInventoryIDs"] == []
    assert state.pruned_by_id["t2"].reason == "manual"

    swept = tools.dcp_prune({}, messages)
    assert swept["mode"] == "sweep"
    assert swept["prunedIDs"] == ["t1"]
    assert swept["candidateCount"] == 1
    assert swept["usedLimit"] is None
    assert swept["transformedView"] == {
        "totalMessages": 3,
        "prunedMessages": 2,
        "prunableInventorySize": 0,
    }


def test_prune_unknown_inventory_id_is_reported() -> None:
    tools = DcpTools(DcpState(), DcpConfig())
    result = tools.dcp_prune({"ids": ["1", "42"], "reason": "done"}, _runtime_messages())
    assert result["ok"] is True
    assert result["prunedIDs"] == ["t1"]
    assert result["unresolvedInventoryIDs"] == ["42"]


def test_prune_range_mode() -> None:
    state = DcpState()
    tools = DcpTools(state, DcpConfig())
    messages = [
        {"id": "u1", "role": "user", "content": "inspect the repo"},
        {"id": "t1", "role": "tool", "toolName": "bash", "content": "listing of src"},
        {"id": "t2", "role": "tool", "toolName": "bash", "content": "listing of tests"},
        {"id": "a1", "role": "assistant", "content": "done"},
    ]
    result = tools.dcp_prune({"start": "listing of src", "end": "listing of tests"}, messages)
    assert result["ok"] is True
    assert result["mode"] == "range"
    assert result["prunedIDs"] == ["t1", "t2"]


def test_prune_range_failure_is_not_raised() -> None:
    tools = DcpTools(DcpState(), DcpConfig())
    result = tools.dcp_prune({"start": "nowhere", "end": "nothing"}, _runtime_messages())
    assert result["ok"] is False
    assert result["mode"] == "range"
    assert "startString" in result["error"]


def test_distill_targets() -> None:
    state = DcpState()
    tools = DcpTools(state, DcpConfig())

    result = tools.dcp_distill(
        {"targets": [
            {"id": "1", "distillation": "tool output one"},
            {"id": "2", "distillation": "tool output two"},
        ]},
        _runtime_messages(),
    )

    assert sorted(result["prunedIDs"]) == ["t1", "t2"]
    assert len(result["distillations"]) == 2
    assert state.distillation_by_source_id["t1"] == result["distillations"][0]["id"]
    assert state.distillation_by_source_id["t2"] == result["distillations"][1]["id"]
    assert result["distillations"][0]["summary"] == "tool output one"
    assert result["distillations"][1]["summary"] == "tool output two"
    assert result["targetsApplied"] == 2
    assert state.pruned_by_id["t1"].distillation_id == "distill-1"


def test_distill_blank_text_and_duplicates() -> None:
    state = DcpState()
    tools = DcpTools(state, DcpConfig())
    result = tools.dcp_distill(
        {"targets": [{"id": "1", "distillation": "  "}, {"id": "1", "distillation": "again"}, {"id": "7"}]},
        _runtime_messages(),
    )
    assert result["targetsApplied"] == 2
    assert result["distillations"][0]["summary"] == EMPTY_DISTILLATION
    assert result["prunedIDs"] == ["t1"]
    assert result["unresolvedInventoryIDs"] == ["7"]


def test_malformed_input_falls_back_to_sweep() -> None:
    tools = DcpTools(DcpState(), DcpConfig())
    result = tools.dcp_prune("not a dict", _runtime_messages())
    assert result["mode"] == "sweep"
    assert result["prunedIDs"] == ["t1", "t2"]


def test_prune_range_reversed_anchors_is_not_raised() -> None:
    tools = DcpTools(DcpState(), DcpConfig())
    result = tools.dcp_prune({"start": "bbb", "end": "aaa"}, _runtime_messages() + [
        {"id": "a1", "role": "assistant", "content": "tail"},
    ])
    assert result["ok"] is False
    assert "appears before" in result["error"]
