"""Instruction texts injected into requests and shown to the model."""

from __future__ import annotations

from dataclasses import dataclass

SYNTH_INSTRUCTION = (
    "<context-pruning>\n"
    "Tool outputs listed under <prunable-tools> can be removed from context with "
    "dcp_prune once you have captured what you need from them. Use dcp_distill to "
    "keep a short summary in their place.\n"
    "</context-pruning>"
)

NUDGE_INSTRUCTION = (
    "<context-pruning-reminder>\n"
    "Several tool results have accumulated. If any are no longer needed for the "
    "current task, prune or distill them now before continuing.\n"
    "</context-pruning-reminder>"
)

DCP_PRUNE_DESCRIPTION = (
    "Prune tool outputs that are no longer relevant to the current task. "
    "Pass inventory IDs in `ids`, or a `start`/`end` text pair to prune tool outputs "
    "between two anchors. With no arguments, prunes every tool output since the "
    "last user message.\n\n"
    "Prune when you finish a discrete unit of work and are about to start the next: "
    "after a commit, a confirmed fix, an answered question, or exploration that did "
    "not lead to changes."
)

DCP_DISTILL_DESCRIPTION = (
    "Replace tool outputs with your own short summary. Each target names an "
    "inventory ID and the distillation text to keep in its place."
)

EMPTY_DISTILLATION = "Distilled context summary was not provided by the caller."


@dataclass
class SynthPrompts:
    """Texts the request pipeline injects."""

    synth_instruction: str = SYNTH_INSTRUCTION
    nudge_instruction: str = NUDGE_INSTRUCTION
    list_prunable: bool = True
