"""Candidate lookup for incoming rows against the canonical pool.

Responsibilities of this stage:
- find canonical rows an incoming row refers to, either by exact key equality
  or through previously adjudicated reconciliation decisions
- classify the candidates as RESOLVED/UNMATCHED/AMBIGUOUS

Out of scope for this stage:
- patching rows
- creating new entities (unmatched rows never become entities here)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sourcemerge.domain.model import PoolEntry

from .contracts import (
    AmbiguousResolution,
    MatchKind,
    ResolvedResolution,
    UnmatchedResolution,
    distinct_uuids,
)
from .normalize import match_key

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sourcemerge.domain.model import MergedPool, MergePolicy, Row

    from .contracts import MatchResolution
    from .normalize import MatchKey

TERM_FIELD = "term"


class Matcher(Protocol):
    """Find canonical rows for one incoming row."""

    kind: MatchKind

    def find_all(self, row: Row) -> tuple[PoolEntry, ...]: ...


@dataclass(slots=True)
class ExactMatcher:
    """Match on equality of the policy's match fields.

    The key index is built once, when the matcher is created for a source, but the
    rows handed back are read from the live pool so earlier patches are visible.
    """

    pool: MergedPool
    policy: MergePolicy
    kind: MatchKind = MatchKind.EXACT
    _index: dict[MatchKey, list[int]] = field(default_factory=dict["MatchKey", "list[int]"])

    def __post_init__(self) -> None:
        for entry in self.pool.entries():
            key = match_key(entry.row, self.policy.match_fields, incoming=False)
            if key is not None:
                self._index.setdefault(key, []).append(entry.position)

    def find_all(self, row: Row) -> tuple[PoolEntry, ...]:
        key = match_key(row, self.policy.match_fields, incoming=True)
        if key is None:
            return ()
        entries = tuple(
            PoolEntry(position, self.pool[position]) for position in self._index.get(key, ())
        )
        return _filter_term(entries, row, term_match=self.policy.term_match)


@dataclass(slots=True)
class ReconciledMatcher:
    """Match through human-adjudicated ``incoming id -> uuid`` decisions."""

    pool: MergedPool
    policy: MergePolicy
    decisions: Mapping[str, str]
    kind: MatchKind = MatchKind.RECONCILED

    def find_all(self, row: Row) -> tuple[PoolEntry, ...]:
        uuid = self.decisions.get(row.id)
        if not uuid:
            return ()
        return _filter_term(self.pool.entries_for(uuid), row, term_match=self.policy.term_match)


def classify(
    candidates: tuple[PoolEntry, ...],
    *,
    match_kind: MatchKind,
    threshold: int = 1,
) -> MatchResolution:
    """Classify candidates for one incoming row.

    - no candidates -> ``UnmatchedResolution``
    - candidates spanning up to ``threshold`` uuids -> ``ResolvedResolution``
    - more distinct uuids -> ``AmbiguousResolution``
    """

    if not candidates:
        return UnmatchedResolution(reason=f"no_{match_kind.value}_match")
    if len(distinct_uuids(candidates)) > threshold:
        return AmbiguousResolution(
            candidates=candidates,
            match_kind=match_kind,
            reason="multiple_entities",
        )
    return ResolvedResolution(
        targets=candidates,
        match_kind=match_kind,
        reason=f"{match_kind.value}_match",
    )


def _filter_term(
    entries: tuple[PoolEntry, ...],
    row: Row,
    *,
    term_match: bool,
) -> tuple[PoolEntry, ...]:
    if not term_match:
        return entries
    term = row.value(TERM_FIELD).strip()
    return tuple(entry for entry in entries if entry.row.value(TERM_FIELD).strip() == term)
