"""Per-session pruning state: records, distillations, inventory cache, counters."""

from __future__ import annotations

from dataclasses import dataclass, field

from .types import DistillationRecord, IdMapping, InventoryEntry, PrunedRecord


@dataclass
class InventoryCache:
    """Numeric-ID mapping over the prunable set, keyed by its signature."""

    signature: str = ""
    entries: list[InventoryEntry] = field(default_factory=list)
    numeric_to_message_id: dict[str, str] = field(default_factory=dict)
    message_to_numeric_id: dict[str, str] = field(default_factory=dict)


@dataclass
class Counters:
    pruned_messages: int = 0
    pruned_chars: int = 0
    distillations: int = 0
    sweeps: int = 0


@dataclass
class DcpState:
    """Mutable pruning state for one session. Never shared across sessions."""

    pruned_by_id: dict[str, PrunedRecord] = field(default_factory=dict)
    id_map: dict[str, IdMapping] = field(default_factory=dict)
    distillation_by_source_id: dict[str, str] = field(default_factory=dict)
    distillations: list[DistillationRecord] = field(default_factory=list)
    inventory: InventoryCache = field(default_factory=InventoryCache)
    counters: Counters = field(default_factory=Counters)

    def is_pruned(self, message_id: str) -> bool:
        return message_id in self.pruned_by_id
