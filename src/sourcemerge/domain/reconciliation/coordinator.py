"""Human-in-the-loop reconciliation files.

A source that declares a reconciliation file is matched through the decisions
recorded in it. The file is produced in *generate* mode, which pairs every
undecided incoming row with its most likely canonical candidates, and read back
in *consume* mode once a person has filled in the ``uuid`` column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rapidfuzz import fuzz, process

from sourcemerge.domain.errors import MalformedSourceError, MissingReconciliationError
from sourcemerge.domain.model import ID_FIELD, UUID_FIELD, ReconciliationDecision, Row

from .contracts import AmbiguousResolution, ResolvedResolution
from .matching import ExactMatcher, classify
from .normalize import fuzzy_processor, normalize_text

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from sourcemerge.domain.model import MergedPool, MergePolicy
    from sourcemerge.domain.ports import TableStore

log = logging.getLogger(__name__)

NAME_FIELD = "name"
SCORE_FIELD = "score"
CANDIDATES_FIELD = "candidates"
RECONCILIATION_HEADER = (ID_FIELD, UUID_FIELD, NAME_FIELD, SCORE_FIELD, CANDIDATES_FIELD)
CANDIDATE_SEPARATOR = ";"


@dataclass(frozen=True, slots=True)
class Candidate:
    uuid: str
    name: str
    score: float

    def render(self) -> str:
        return f"{self.uuid}|{self.name}|{self.score:.0f}"


@dataclass(frozen=True, slots=True)
class GenerationResult:
    path: Path
    pending: int


@dataclass(slots=True)
class ReconciliationCoordinator:
    store: TableStore
    candidate_limit: int = 5
    ambiguity_threshold: int = 1

    def consume(self, path: Path) -> dict[str, str]:
        """Return the ``incoming id -> uuid`` decisions recorded in ``path``."""

        return {decision.incoming_id: decision.uuid for decision in self.read_decisions(path)}

    def read_decisions(self, path: Path) -> tuple[ReconciliationDecision, ...]:
        decisions = tuple(
            ReconciliationDecision(incoming_id=row.id, uuid=row.uuid)
            for row in self._decided_rows(path)
        )
        log.debug("Read %d reconciliation decision(s) from %s", len(decisions), path)
        return decisions

    def generate(
        self,
        path: Path,
        *,
        incoming: Sequence[Row],
        pool: MergedPool,
        policy: MergePolicy,
    ) -> GenerationResult:
        """Write ``path`` pairing undecided incoming rows with candidate entities.

        Decided rows already in the file are kept as written. An incoming row whose
        exact match resolves within ``ambiguity_threshold`` entities is decided
        automatically; every other row is written with an empty ``uuid`` for a
        person to fill in.
        """

        decided: dict[str, Row] = {}
        if self.store.exists(path):
            decided = {row.id: row for row in self._decided_rows(path)}

        exact = ExactMatcher(pool, policy) if policy.match_fields else None
        entity_names = _entity_names(pool)
        output: dict[str, Row] = dict(decided)
        auto_decided = pending = 0

        for row in incoming:
            if row.id in output:
                continue
            candidates: list[Candidate] = []
            if exact is not None:
                resolution = classify(
                    exact.find_all(row),
                    match_kind=exact.kind,
                    threshold=self.ambiguity_threshold,
                )
                if isinstance(resolution, ResolvedResolution):
                    # A decision names one entity; the others stay listed as candidates.
                    output[row.id] = _decision_row(
                        row,
                        uuid=resolution.uuids[0],
                        candidates=[
                            Candidate(uuid, entity_names[uuid], 100.0)
                            for uuid in resolution.uuids
                        ],
                    )
                    auto_decided += 1
                    continue
                if isinstance(resolution, AmbiguousResolution):
                    candidates.extend(
                        Candidate(uuid, entity_names[uuid], 100.0) for uuid in resolution.uuids
                    )
            candidates.extend(self._fuzzy_candidates(row, entity_names, exclude=candidates))
            output[row.id] = _decision_row(
                row, uuid="", candidates=candidates[: self.candidate_limit]
            )
            pending += 1

        self.store.write(path, header=RECONCILIATION_HEADER, rows=output.values())
        log.info(
            "Wrote reconciliation file %s: %d kept, %d auto-matched, %d pending review",
            path,
            len(decided),
            auto_decided,
            pending,
        )
        return GenerationResult(path=path, pending=pending)

    def _decided_rows(self, path: Path) -> tuple[Row, ...]:
        if not self.store.exists(path):
            raise MissingReconciliationError(path)
        table = self.store.read(path)
        missing = {ID_FIELD, UUID_FIELD}.difference(table.header)
        if missing:
            raise MalformedSourceError(
                path, f"reconciliation file lacks column(s): {', '.join(sorted(missing))}"
            )
        return tuple(row for row in table.rows if row.id and row.uuid)

    def _fuzzy_candidates(
        self,
        row: Row,
        entity_names: dict[str, str],
        *,
        exclude: Iterable[Candidate],
    ) -> list[Candidate]:
        name = row.value(NAME_FIELD)
        if not normalize_text(name):
            return []
        skip = {candidate.uuid for candidate in exclude}
        choices = {
            uuid: entity_name for uuid, entity_name in entity_names.items() if uuid not in skip
        }
        matches = process.extract(
            name,
            choices,
            scorer=fuzz.token_sort_ratio,
            processor=fuzzy_processor,
            limit=self.candidate_limit,
        )
        return [
            Candidate(str(uuid), entity_name, float(score)) for entity_name, score, uuid in matches
        ]


def _entity_names(pool: MergedPool) -> dict[str, str]:
    names: dict[str, str] = {}
    for row in pool:
        if not names.get(row.uuid):
            names[row.uuid] = row.value(NAME_FIELD)
    return names


def _decision_row(row: Row, *, uuid: str, candidates: Sequence[Candidate]) -> Row:
    best = max((candidate.score for candidate in candidates), default=0.0)
    return Row(
        {
            ID_FIELD: row.id,
            UUID_FIELD: uuid,
            NAME_FIELD: row.value(NAME_FIELD),
            SCORE_FIELD: f"{best:.0f}" if candidates else "",
            CANDIDATES_FIELD: CANDIDATE_SEPARATOR.join(
                candidate.render() for candidate in candidates
            ),
        }
    )
