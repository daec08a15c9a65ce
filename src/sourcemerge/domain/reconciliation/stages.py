"""Merge phases, one per declared source, and the state they share.

Each phase folds a single source into ``MergeState``. The engine decides the
order; phases only assume that every membership phase has already run when an
enrichment phase starts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sourcemerge.domain.diagnostics import Diagnostics
from sourcemerge.domain.errors import (
    AmbiguousMatchError,
    FieldConflictError,
    ReconciliationPendingError,
    SourceDeclarationError,
    UnresolvedReferenceError,
)
from sourcemerge.domain.identity import IdentifierMap, new_uuid
from sourcemerge.domain.model import AreaMode, MergedPool, MergePolicy
from sourcemerge.domain.sources import LEGACY_ID_FIELD

from .areas import AreaResolver
from .contracts import AmbiguousResolution, ResolvedResolution
from .gender import GENDER_FIELD, tally_gender_votes
from .matching import ExactMatcher, ReconciledMatcher, classify
from .normalize import same_value
from .patch import patch

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from sourcemerge.domain.model import Row, SourceKind
    from sourcemerge.domain.ports import TableStore
    from sourcemerge.domain.sources import (
        AreaSource,
        CorrectionsSource,
        GenderSource,
        LegacyIdSource,
        SourceAdapter,
    )

    from .coordinator import ReconciliationCoordinator
    from .matching import Matcher

log = logging.getLogger(__name__)

AREA_ID_FIELD = "area_id"
AREA_FIELD = "area"


@dataclass(slots=True)
class HeaderSet:
    """Output columns in first-seen order."""

    _names: dict[str, None] = field(default_factory=dict["str", "None"])

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def add(self, *names: str) -> None:
        self.extend(names)

    def extend(self, names: Iterable[str]) -> None:
        for name in names:
            self._names.setdefault(name, None)

    def as_tuple(self) -> tuple[str, ...]:
        return tuple(self._names)


@dataclass(slots=True)
class SourceSummary:
    """What one source contributed to the run."""

    source: str
    kind: SourceKind
    incoming: int = 0
    added: int = 0
    matched: int = 0
    patched: int = 0
    unmatched: int = 0
    ambiguous: int = 0


@dataclass(slots=True, kw_only=True)
class MergeContext:
    """Collaborators and settings shared by every phase of one run."""

    store: TableStore
    coordinator: ReconciliationCoordinator
    generate_reconciliation: bool = False
    ambiguity_threshold: int = 1
    unmatched_sample_size: int = 10
    gender_min_votes: int = 5
    gender_winning_share: float = 0.8
    mint: Callable[[], str] = new_uuid


@dataclass(slots=True)
class MergeState:
    """Mutable merge state threaded through the phases."""

    pool: MergedPool = field(default_factory=MergedPool)
    header: HeaderSet = field(default_factory=HeaderSet)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    id_maps: list[IdentifierMap] = field(default_factory=list["IdentifierMap"])
    summaries: list[SourceSummary] = field(default_factory=list["SourceSummary"])


class MergePhase(Protocol):
    """Contract implemented by each merge phase."""

    name: str

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary: ...


@dataclass(slots=True)
class MembershipPhase:
    """Give every membership row a stable uuid and add it to the pool."""

    adapter: SourceAdapter
    name: str = "membership"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        rows = self.adapter.as_table()
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(rows))
        log.info("Add memberships from %s", source.name)

        id_map = IdentifierMap.load(
            context.store, source.resolved_id_map_file(), mint=context.mint
        )
        decisions = _reconciliation_decisions(
            self.adapter, state, context=context, policy=self.adapter.merge_policy or MergePolicy()
        )
        for native_id, uuid in (decisions or {}).items():
            id_map.seed(native_id, uuid)

        for row in rows:
            state.pool.append(row.updated(uuid=id_map.assign(row.id)))
            summary.added += 1
        state.id_maps.append(id_map)
        log.debug("%s: %d uuid(s) minted", source.name, id_map.minted)
        return summary


@dataclass(slots=True)
class BiographyPhase:
    """Patch biographical fields into the rows of the entities they describe.

    Unmatched rows are counted and dropped; rows whose candidates span too many
    entities are reported and skipped.
    """

    adapter: SourceAdapter
    name: str = "biography"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        policy = self.adapter.merge_policy
        if policy is None:
            raise SourceDeclarationError(f"No merge instructions for {source.name}")
        rows = self.adapter.as_table()
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(rows))
        log.info("Merging with %s", source.name)

        decisions = _reconciliation_decisions(self.adapter, state, context=context, policy=policy)
        matcher: Matcher = (
            ExactMatcher(state.pool, policy)
            if decisions is None
            else ReconciledMatcher(state.pool, policy, decisions)
        )

        unmatched: list[Row] = []
        for row in rows:
            resolution = classify(
                matcher.find_all(row),
                match_kind=matcher.kind,
                threshold=context.ambiguity_threshold,
            )
            if isinstance(resolution, AmbiguousResolution):
                state.diagnostics.record(
                    AmbiguousMatchError(source=source.name, row_id=row.id, uuids=resolution.uuids)
                )
                summary.ambiguous += 1
                continue
            if not isinstance(resolution, ResolvedResolution):
                unmatched.append(row)
                continue

            summary.matched += 1
            for entry in resolution.targets:
                result = patch(
                    state.pool[entry.position], row, policy, origin=f"{source.name}:{row.id}"
                )
                for conflict in result.conflicts:
                    state.diagnostics.record(conflict)
                state.header.extend(result.new_headers)
                if result.changed:
                    state.pool.replace(entry.position, result.row)
                    summary.patched += 1

        summary.unmatched = len(unmatched)
        if unmatched:
            _log_unmatched(
                source.name,
                unmatched,
                total=len(rows),
                sample_size=context.unmatched_sample_size,
            )
        return summary


@dataclass(slots=True)
class GenderPhase:
    """Fill blank genders from the vote tally; never overwrite one."""

    adapter: GenderSource
    name: str = "gender"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        rows = self.adapter.as_table()
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(rows))
        log.info("Adding GenderBalance results from %s", source.name)

        winners = tally_gender_votes(
            rows,
            path=source.file,
            min_votes=context.gender_min_votes,
            winning_share=context.gender_winning_share,
        )
        state.header.add(GENDER_FIELD)
        for entry in list(state.pool.entries()):
            gender = winners.get(entry.row.uuid)
            if gender is None:
                continue
            summary.matched += 1
            current = entry.row.value(GENDER_FIELD)
            if not current.strip():
                state.pool.replace(entry.position, entry.row.updated({GENDER_FIELD: gender}))
                summary.added += 1
            elif not same_value(current, gender):
                state.diagnostics.record(
                    FieldConflictError(
                        uuid=entry.row.uuid,
                        field=GENDER_FIELD,
                        existing=current,
                        incoming=gender,
                        origin=source.name,
                    )
                )
        log.info(
            "%s: gender data for %d row(s), %d added", source.name, summary.matched, summary.added
        )
        return summary


@dataclass(slots=True)
class AreaPhase:
    """Attach canonical area ids and names to every row."""

    adapter: AreaSource
    name: str = "area"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        areas = self.adapter.areas()
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(areas))
        policy = self.adapter.merge_policy
        resolver = AreaResolver.from_pairs(
            areas,
            overrides=source.area_overrides,
            fuzzy=policy is not None and policy.fuzzy,
        )
        state.header.add(AREA_ID_FIELD, AREA_FIELD)

        if source.area_mode is AreaMode.ID:
            log.info("Adding area names from %s by area_id", source.name)
            self._join_by_id(state, resolver, summary)
        else:
            log.info("Resolving area names against %s", source.name)
            self._resolve_names(state, resolver, summary)
            self._backfill_names(state, resolver, summary)
        return summary

    def _join_by_id(
        self, state: MergeState, resolver: AreaResolver, summary: SourceSummary
    ) -> None:
        for entry in list(state.pool.entries()):
            area_id = entry.row.value(AREA_ID_FIELD).strip()
            name = resolver.name_for(area_id) if area_id else None
            if name is None:
                state.diagnostics.record(
                    UnresolvedReferenceError(
                        kind=AREA_ID_FIELD, value=area_id, subject=entry.row.uuid
                    )
                )
                continue
            state.pool.replace(entry.position, entry.row.updated({AREA_FIELD: name}))
            summary.matched += 1

    def _resolve_names(
        self, state: MergeState, resolver: AreaResolver, summary: SourceSummary
    ) -> None:
        for entry in list(state.pool.entries()):
            row = entry.row
            if row.has_value(AREA_ID_FIELD) or not row.has_value(AREA_FIELD):
                continue
            name = row.value(AREA_FIELD)
            area_id = resolver.resolve(name)
            if area_id is None:
                state.diagnostics.record(UnresolvedReferenceError(kind=AREA_FIELD, value=name))
                summary.unmatched += 1
                continue
            state.pool.replace(entry.position, row.updated({AREA_ID_FIELD: area_id}))
            summary.matched += 1

    def _backfill_names(
        self, state: MergeState, resolver: AreaResolver, summary: SourceSummary
    ) -> None:
        for entry in list(state.pool.entries()):
            row = entry.row
            if row.has_value(AREA_FIELD) or not row.has_value(AREA_ID_FIELD):
                continue
            area_id = row.value(AREA_ID_FIELD)
            name = resolver.name_for(area_id)
            if name is None:
                state.diagnostics.record(
                    UnresolvedReferenceError(kind=AREA_ID_FIELD, value=area_id)
                )
                continue
            state.pool.replace(entry.position, row.updated({AREA_FIELD: name}))
            summary.added += 1


@dataclass(slots=True)
class CorrectionsPhase:
    """Apply manual corrections guarded by the value they expect to replace."""

    adapter: CorrectionsSource
    name: str = "corrections"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        corrections = self.adapter.corrections()
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(corrections))
        log.info("Applying %d correction(s) from %s", len(corrections), source.name)

        for correction in corrections:
            entries = state.pool.entries_for(correction.uuid)
            if not entries:
                state.diagnostics.record(
                    UnresolvedReferenceError(
                        kind="uuid",
                        value=correction.uuid,
                        subject=f"correction of {correction.field}",
                    )
                )
                summary.unmatched += 1
                continue
            summary.matched += 1
            for entry in entries:
                current = entry.row.value(correction.field)
                if current != correction.old:
                    state.diagnostics.record(
                        FieldConflictError(
                            uuid=correction.uuid,
                            field=correction.field,
                            existing=current,
                            incoming=correction.new,
                            origin=f"{source.name} expecting {correction.old!r}",
                        )
                    )
                    continue
                state.header.add(correction.field)
                state.pool.replace(
                    entry.position, entry.row.updated({correction.field: correction.new})
                )
                summary.patched += 1
        return summary


@dataclass(slots=True)
class LegacyIdPhase:
    adapter: LegacyIdSource
    name: str = "legacy-ids"

    def run(self, state: MergeState, *, context: MergeContext) -> SourceSummary:
        source = self.adapter.source
        legacy: dict[str, str] = {}
        for item in self.adapter.legacy_ids():
            legacy.setdefault(item.uuid, item.legacy)
        summary = SourceSummary(source=source.name, kind=source.kind, incoming=len(legacy))
        log.info("Adding legacy identifiers from %s", source.name)

        state.header.add(LEGACY_ID_FIELD)
        for entry in list(state.pool.entries()):
            value = legacy.get(entry.row.uuid)
            if value is None:
                continue
            state.pool.replace(entry.position, entry.row.updated({LEGACY_ID_FIELD: value}))
            summary.added += 1
        return summary


def _reconciliation_decisions(
    adapter: SourceAdapter,
    state: MergeState,
    *,
    context: MergeContext,
    policy: MergePolicy,
) -> Mapping[str, str] | None:
    path = adapter.source.reconciliation_file
    if path is None:
        return None
    if context.generate_reconciliation:
        result = context.coordinator.generate(
            path, incoming=adapter.as_table(), pool=state.pool, policy=policy
        )
        if result.pending:
            raise ReconciliationPendingError([path])
    return context.coordinator.consume(path)


def _log_unmatched(source: str, rows: list[Row], *, total: int, sample_size: int) -> None:
    log.warning("%s: %d of %d row(s) unmatched", source, len(rows), total)
    for row in rows[:sample_size]:
        log.info("  unmatched: id=%s name=%s", row.id, row.value("name"))
    if len(rows) > sample_size:
        log.info("  ... and %d more", len(rows) - sample_size)
