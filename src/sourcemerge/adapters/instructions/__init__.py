"""Public interface for the instructions adapter."""

from __future__ import annotations

from .schema import InstructionsDocument, MergePayload, SourcePayload
from .translator import load_instructions, to_merge_policy, to_source, translate_instructions

__all__ = [
    "InstructionsDocument",
    "MergePayload",
    "SourcePayload",
    "load_instructions",
    "to_merge_policy",
    "to_source",
    "translate_instructions",
]
