"""Public domain model surface."""

from __future__ import annotations

from sourcemerge.domain.model.records import Correction, LegacyId, ReconciliationDecision
from sourcemerge.domain.model.row import (
    ID_FIELD,
    UUID_FIELD,
    MergedPool,
    PoolEntry,
    Row,
    normalize_header,
)
from sourcemerge.domain.model.source import (
    BIOGRAPHY_KINDS,
    SINGLETON_KINDS,
    STAGE_ORDER,
    AreaMode,
    FieldMatch,
    MergePolicy,
    PatchStrategy,
    Source,
    SourceKind,
)

__all__ = [
    "BIOGRAPHY_KINDS",
    "ID_FIELD",
    "SINGLETON_KINDS",
    "STAGE_ORDER",
    "UUID_FIELD",
    "AreaMode",
    "Correction",
    "FieldMatch",
    "LegacyId",
    "MergePolicy",
    "MergedPool",
    "PatchStrategy",
    "PoolEntry",
    "ReconciliationDecision",
    "Row",
    "Source",
    "SourceKind",
    "normalize_header",
]
