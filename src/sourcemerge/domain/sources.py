"""Tabular source adapters, one variant per source kind."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.model import (
    ID_FIELD,
    UUID_FIELD,
    Correction,
    LegacyId,
    SourceKind,
    normalize_header,
)
from sourcemerge.domain.ports import Table

if TYPE_CHECKING:
    from sourcemerge.domain.model import MergePolicy, Row, Source
    from sourcemerge.domain.ports import TableStore

log = logging.getLogger(__name__)

WIKIDATA_FIELD = "identifier__wikidata"
LEGACY_ID_FIELD = "identifier__everypolitician_legacy"


class SourceAdapter:
    """Loads one declared source and exposes it as ordered rows.

    The table is read once and cached; every row must carry the adapter's key
    column or the whole load fails.
    """

    KIND: ClassVar[SourceKind]
    KEY_FIELD: ClassVar[str] = ID_FIELD
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ()

    def __init__(self, source: Source, store: TableStore) -> None:
        if source.kind is not self.KIND:
            raise TypeError(f"{type(self).__name__} cannot load {source.kind} sources")
        self.source = source
        self.store = store
        self._table: Table | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source.file})"

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def is_membership(self) -> bool:
        return self.source.is_membership

    @property
    def is_biography(self) -> bool:
        return self.source.is_biography

    @property
    def merge_policy(self) -> MergePolicy | None:
        return self.source.merge_policy

    @property
    def fields(self) -> tuple[str, ...]:
        """Columns this source contributes to the merged output."""

        return ()

    def as_table(self) -> tuple[Row, ...]:
        return self._load().rows

    def _load(self) -> Table:
        if self._table is None:
            table = self.store.read(self.source.file)
            required = (self.KEY_FIELD, *self.REQUIRED_FIELDS)
            missing = [name for name in required if name not in table.header]
            if missing:
                raise MalformedSourceError(
                    self.source.file, f"missing column(s): {', '.join(missing)}"
                )
            for number, row in enumerate(table.rows, start=1):
                if not row.has_value(self.KEY_FIELD):
                    raise MalformedSourceError(
                        self.source.file, f"row {number} has no {self.KEY_FIELD}"
                    )
            self._table = self._prepare(table)
            log.debug("Loaded %d row(s) from %s", len(self._table), self.source.file)
        return self._table

    def _prepare(self, table: Table) -> Table:
        return table


class PersonSource(SourceAdapter):
    """Membership and biography feeds contribute their own columns."""

    @property
    def fields(self) -> tuple[str, ...]:
        if self.source.fields:
            return self.source.fields
        return self._load().header


class MembershipSource(PersonSource):
    KIND = SourceKind.MEMBERSHIP


class BiographySource(PersonSource):
    KIND = SourceKind.BIOGRAPHY


class WikidataSource(PersonSource):
    """Biographical rows keyed by Wikidata item id."""

    KIND = SourceKind.WIKIDATA_RAW

    @property
    def fields(self) -> tuple[str, ...]:
        fields = super().fields
        return fields if WIKIDATA_FIELD in fields else (*fields, WIKIDATA_FIELD)

    def _prepare(self, table: Table) -> Table:
        header = table.header
        if WIKIDATA_FIELD not in header:
            header = (*header, WIKIDATA_FIELD)
        rows = tuple(
            row if row.has_value(WIKIDATA_FIELD) else row.updated({WIKIDATA_FIELD: row.id})
            for row in table.rows
        )
        return Table(header=header, rows=rows)


class GenderSource(SourceAdapter):
    KIND = SourceKind.GENDER
    KEY_FIELD = UUID_FIELD

    @property
    def fields(self) -> tuple[str, ...]:
        return ("gender",)


class AreaSource(SourceAdapter):
    """Known areas: ``id`` is the canonical area id, ``name`` its label."""

    KIND = SourceKind.AREA
    REQUIRED_FIELDS = ("name",)

    @property
    def fields(self) -> tuple[str, ...]:
        return ("area_id", "area")

    def areas(self) -> tuple[tuple[str, str], ...]:
        return tuple((row.id, row.value("name")) for row in self.as_table())


class CorrectionsSource(SourceAdapter):
    KIND = SourceKind.CORRECTIONS
    KEY_FIELD = UUID_FIELD
    REQUIRED_FIELDS = ("field", "old", "new")

    def corrections(self) -> tuple[Correction, ...]:
        corrections: list[Correction] = []
        for row in self.as_table():
            if not row.has_value("field"):
                raise MalformedSourceError(
                    self.source.file, f"correction for {row.uuid} names no field"
                )
            corrections.append(
                Correction(
                    uuid=row.uuid,
                    field=normalize_header(row.value("field")),
                    old=row.value("old"),
                    new=row.value("new"),
                )
            )
        return tuple(corrections)


class LegacyIdSource(SourceAdapter):
    KIND = SourceKind.LEGACY_IDS
    KEY_FIELD = UUID_FIELD
    REQUIRED_FIELDS = ("legacy",)

    @property
    def fields(self) -> tuple[str, ...]:
        return (LEGACY_ID_FIELD,)

    def legacy_ids(self) -> tuple[LegacyId, ...]:
        return tuple(
            LegacyId(uuid=row.uuid, legacy=row.value("legacy"))
            for row in self.as_table()
            if row.has_value("legacy")
        )


_ADAPTERS: dict[SourceKind, type[SourceAdapter]] = {
    adapter.KIND: adapter
    for adapter in (
        MembershipSource,
        BiographySource,
        WikidataSource,
        GenderSource,
        AreaSource,
        CorrectionsSource,
        LegacyIdSource,
    )
}


def build_source_adapter(source: Source, store: TableStore) -> SourceAdapter:
    """Instantiate the adapter variant for ``source.kind``."""

    return _ADAPTERS[source.kind](source, store)
