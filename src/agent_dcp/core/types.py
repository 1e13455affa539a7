"""Core data types for agent-dcp."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class Message(BaseModel):
    """A single conversation message as supplied by the host runtime.

    ``content`` is either a plain string or a list of typed parts
    (``text``, ``reasoning``, ``tool``, ``compaction``, ``subtask``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    role: str = ""
    tool_name: str | None = Field(default=None, alias="toolName")
    content: Any = None
    input: Any = None
    meta: dict[str, Any] | None = None
    file_path: str | None = Field(default=None, alias="filePath")

    @property
    def is_tool_like(self) -> bool:
        return self.role == MessageRole.TOOL.value or self.tool_name is not None


# -- Pruning records --


class PrunedRecord(BaseModel):
    """Why and when a message was pruned."""

    reason: str
    tool_name: str | None = None
    chars: int = 0
    at: float
    distillation_id: str | None = None
    tool_call_ids: list[str] = Field(default_factory=list)


class DistillationRecord(BaseModel):
    """A caller-supplied summary standing in for one or more pruned messages."""

    id: str
    source_message_ids: list[str]
    summary: str
    at: float


class InventoryEntry(BaseModel):
    """A currently prunable message under its short numeric ID."""

    id: str
    message_id: str
    role: str = ""
    tool_name: str = ""
    chars: int = 0
    estimated_tokens: int = 0


class IdMapping(BaseModel):
    original_id: str
    transformed_id: str
    pruned: bool


class PruneResult(BaseModel):
    """Outcome of a targeted prune. Missing and protected IDs are reported, not raised."""

    pruned_ids: list[str] = Field(default_factory=list)
    protected_ids: list[str] = Field(default_factory=list)
    missing_ids: list[str] = Field(default_factory=list)


class SweepResult(PruneResult):
    candidate_count: int = 0
    used_limit: int | None = None


class InventoryResolution(BaseModel):
    resolved_message_ids: list[str] = Field(default_factory=list)
    missing_ids: list[str] = Field(default_factory=list)


class ViewSummary(BaseModel):
    total_messages: int
    pruned_messages: int
    prunable_inventory_size: int
