"""Staged merge of declared sources into one canonical table.

Responsibilities of the engine:
- validate the declared sources and load every table before anything mutates
- run one phase per source in stage order (memberships first)
- flush diagnostics at each phase boundary
- rewrite ``id`` to the canonical ``uuid``, write the output and persist id maps

Matching, patching and area resolution live in the phases and their helpers.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sourcemerge.domain.errors import (
    MissingInputError,
    MissingReconciliationError,
    SourceDeclarationError,
)
from sourcemerge.domain.identity import new_uuid
from sourcemerge.domain.model import ID_FIELD, SINGLETON_KINDS, UUID_FIELD, SourceKind
from sourcemerge.domain.sources import (
    AreaSource,
    CorrectionsSource,
    GenderSource,
    LegacyIdSource,
    build_source_adapter,
)

from .coordinator import ReconciliationCoordinator
from .stages import (
    AreaPhase,
    BiographyPhase,
    CorrectionsPhase,
    GenderPhase,
    LegacyIdPhase,
    MembershipPhase,
    MergeContext,
    MergeState,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from sourcemerge.domain.diagnostics import Diagnostics
    from sourcemerge.domain.model import Row, Source
    from sourcemerge.domain.ports import TableStore
    from sourcemerge.domain.sources import SourceAdapter

    from .stages import MergePhase, SourceSummary

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of a merge run."""

    output_file: Path
    header: tuple[str, ...]
    rows: tuple[Row, ...]
    diagnostics: Diagnostics
    summaries: tuple[SourceSummary, ...]
    id_map_files: tuple[Path, ...]

    @property
    def entity_count(self) -> int:
        return len({row.uuid for row in self.rows})


class MergeEngine:
    """Run the merge stages for one set of declared sources."""

    def __init__(
        self,
        store: TableStore,
        *,
        generate_reconciliation: bool = False,
        ambiguity_threshold: int = 1,
        unmatched_sample_size: int = 10,
        candidate_limit: int = 5,
        gender_min_votes: int = 5,
        gender_winning_share: float = 0.8,
        mint: Callable[[], str] = new_uuid,
    ) -> None:
        self.store = store
        self.context = MergeContext(
            store=store,
            coordinator=ReconciliationCoordinator(
                store,
                candidate_limit=candidate_limit,
                ambiguity_threshold=ambiguity_threshold,
            ),
            generate_reconciliation=generate_reconciliation,
            ambiguity_threshold=ambiguity_threshold,
            unmatched_sample_size=unmatched_sample_size,
            gender_min_votes=gender_min_votes,
            gender_winning_share=gender_winning_share,
            mint=mint,
        )

    def run(self, sources: Sequence[Source], *, output_file: Path) -> MergeResult:
        ordered = sorted(sources, key=lambda source: source.stage)
        self._preflight(ordered)
        adapters = [build_source_adapter(source, self.store) for source in ordered]

        state = MergeState()
        state.header.add(ID_FIELD, UUID_FIELD)
        for adapter in adapters:
            # Loading up front surfaces malformed files before any output is written.
            adapter.as_table()
            state.header.extend(adapter.fields)

        for phase in (_phase_for(adapter) for adapter in adapters):
            summary = phase.run(state, context=self.context)
            state.summaries.append(summary)
            state.diagnostics.flush(f"{phase.name} ({summary.source})")

        rows = tuple(row.updated({ID_FIELD: row.uuid}) for row in state.pool)
        header = state.header.as_tuple()
        self.store.write(output_file, header=header, rows=rows)
        for id_map in state.id_maps:
            id_map.persist(self.store)

        log.info(
            "Wrote %d row(s) for %d entities to %s",
            len(rows),
            len(state.pool.uuids),
            output_file,
        )
        counts = state.diagnostics.counts()
        if counts:
            log.warning(
                "Issues recorded: %s",
                ", ".join(f"{category}={count}" for category, count in sorted(counts.items())),
            )

        return MergeResult(
            output_file=output_file,
            header=header,
            rows=rows,
            diagnostics=state.diagnostics,
            summaries=tuple(state.summaries),
            id_map_files=tuple(id_map.path for id_map in state.id_maps),
        )

    def _preflight(self, sources: Sequence[Source]) -> None:
        for source in sources:
            if not self.store.exists(source.file):
                raise MissingInputError(source.file)
            reconciliation_file = source.reconciliation_file
            if (
                reconciliation_file is not None
                and not self.context.generate_reconciliation
                and not self.store.exists(reconciliation_file)
            ):
                raise MissingReconciliationError(reconciliation_file)

        duplicates = sorted(
            name for name, count in Counter(source.name for source in sources).items() if count > 1
        )
        if duplicates:
            raise SourceDeclarationError(
                f"Sources must have distinct file names: {', '.join(duplicates)}"
            )

        id_maps = Counter(
            source.resolved_id_map_file() for source in sources if source.is_membership
        )
        shared = sorted(str(path) for path, count in id_maps.items() if count > 1)
        if shared:
            raise SourceDeclarationError(
                f"Membership sources must have distinct id map files: {', '.join(shared)}"
            )

        kinds = Counter(source.kind for source in sources)
        repeated = sorted(kind.value for kind in SINGLETON_KINDS if kinds[kind] > 1)
        if repeated:
            raise SourceDeclarationError(
                f"At most one source allowed per kind: {', '.join(repeated)}"
            )
        if not kinds[SourceKind.MEMBERSHIP]:
            raise SourceDeclarationError("At least one membership source is required")

        for source in sources:
            if not source.is_biography:
                continue
            policy = source.merge_policy
            if policy is None or (not policy.match_fields and source.reconciliation_file is None):
                raise SourceDeclarationError(
                    f"No merge instructions for {source.name}: declare match fields "
                    "or a reconciliation file"
                )


def _phase_for(adapter: SourceAdapter) -> MergePhase:
    if adapter.is_membership:
        return MembershipPhase(adapter)
    if adapter.is_biography:
        return BiographyPhase(adapter)
    if isinstance(adapter, GenderSource):
        return GenderPhase(adapter)
    if isinstance(adapter, AreaSource):
        return AreaPhase(adapter)
    if isinstance(adapter, CorrectionsSource):
        return CorrectionsPhase(adapter)
    if isinstance(adapter, LegacyIdSource):
        return LegacyIdPhase(adapter)
    raise TypeError(f"No merge phase for {adapter!r}")
