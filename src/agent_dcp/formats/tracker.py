"""Tool-result tracker and nudge cadence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


@dataclass
class ToolTracker:
    """Distinct tool results seen across requests for one session."""

    seen_tool_result_ids: set[str] = field(default_factory=set)
    tool_result_count: int = 0

    def observe(self, result_ids: Iterable[str]) -> int:
        """Record result IDs (case-folded). Returns how many were new."""
        new = 0
        for result_id in result_ids:
            key = result_id.lower()
            if key in self.seen_tool_result_ids:
                continue
            self.seen_tool_result_ids.add(key)
            new += 1
        self.tool_result_count += new
        return new


def crossed_nudge_boundary(prev_count: int, new_count: int, frequency: int) -> bool:
    """True when the count moved into a new ``frequency``-sized bucket."""
    if frequency <= 0 or new_count <= prev_count:
        return False
    return new_count // frequency > prev_count // frequency
