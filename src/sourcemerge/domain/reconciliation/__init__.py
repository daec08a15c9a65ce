"""Reconciliation core for merging tabular feeds into one canonical table.

Layered flow per run:
1) assign stable uuids to membership rows
2) match biographical rows against the pool (exact keys or adjudicated decisions)
3) classify candidates and patch resolved rows field by field
4) enrich with gender, area and correction feeds
5) rewrite identifiers and serialize
"""

from __future__ import annotations

from .areas import Area, AreaMatch, AreaResolver
from .contracts import (
    AmbiguousResolution,
    MatchKind,
    MatchResolution,
    ResolutionStatus,
    ResolvedResolution,
    UnmatchedResolution,
)
from .coordinator import GenerationResult, ReconciliationCoordinator
from .engine import MergeEngine, MergeResult
from .matching import ExactMatcher, Matcher, ReconciledMatcher, classify
from .patch import PatchResult, patch
from .stages import MergeContext, MergeState, SourceSummary

__all__ = [
    "AmbiguousResolution",
    "Area",
    "AreaMatch",
    "AreaResolver",
    "ExactMatcher",
    "GenerationResult",
    "MatchKind",
    "MatchResolution",
    "Matcher",
    "MergeContext",
    "MergeEngine",
    "MergeResult",
    "MergeState",
    "PatchResult",
    "ReconciledMatcher",
    "ReconciliationCoordinator",
    "ResolutionStatus",
    "ResolvedResolution",
    "SourceSummary",
    "UnmatchedResolution",
    "classify",
    "patch",
]
