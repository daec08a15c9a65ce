"""Shared reconciliation contract components.

This module intentionally holds only the match outcome types exchanged between
matchers, the reconciliation coordinator and the merge engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal, TypeAlias

if TYPE_CHECKING:
    from sourcemerge.domain.model import PoolEntry


class ResolutionStatus(StrEnum):
    """Outcome of matching one incoming row against the canonical pool."""

    RESOLVED = "resolved"
    UNMATCHED = "unmatched"
    AMBIGUOUS = "ambiguous"


class MatchKind(StrEnum):
    """How a matcher found its candidates."""

    EXACT = "exact"
    RECONCILED = "reconciled"
    FUZZY = "fuzzy"


@dataclass(slots=True, kw_only=True)
class UnmatchedResolution:
    """No canonical row corresponds to the incoming row."""

    status: Literal[ResolutionStatus.UNMATCHED] = ResolutionStatus.UNMATCHED
    reason: str | None = None


@dataclass(slots=True, kw_only=True)
class ResolvedResolution:
    """Incoming row resolved to rows of an acceptable number of entities."""

    targets: tuple[PoolEntry, ...]
    match_kind: MatchKind
    reason: str | None = None
    status: Literal[ResolutionStatus.RESOLVED] = ResolutionStatus.RESOLVED

    def __post_init__(self) -> None:
        if not self.targets:
            raise ValueError("Resolved resolution must include at least one target")

    @property
    def uuids(self) -> tuple[str, ...]:
        return distinct_uuids(self.targets)


@dataclass(slots=True, kw_only=True)
class AmbiguousResolution:
    """Candidates span too many entities; the row must not be merged."""

    candidates: tuple[PoolEntry, ...]
    match_kind: MatchKind
    reason: str | None = None
    status: Literal[ResolutionStatus.AMBIGUOUS] = ResolutionStatus.AMBIGUOUS

    def __post_init__(self) -> None:
        if not self.candidates:
            raise ValueError("Ambiguous resolution must include at least one candidate")

    @property
    def uuids(self) -> tuple[str, ...]:
        return distinct_uuids(self.candidates)


MatchResolution: TypeAlias = UnmatchedResolution | ResolvedResolution | AmbiguousResolution


def distinct_uuids(entries: tuple[PoolEntry, ...]) -> tuple[str, ...]:
    """Distinct uuids of ``entries`` in first-seen order."""

    return tuple(dict.fromkeys(entry.row.uuid for entry in entries))
