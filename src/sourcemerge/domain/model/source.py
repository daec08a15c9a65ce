"""Source declarations and merge policies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


class SourceKind(StrEnum):
    MEMBERSHIP = "membership"
    BIOGRAPHY = "biography"
    WIKIDATA_RAW = "wikidata-raw"
    GENDER = "gender"
    AREA = "area"
    CORRECTIONS = "corrections"
    LEGACY_IDS = "legacy-ids"


# Order in which kinds are merged; identity has to exist before enrichment.
# Wikidata rows are biographical and share the biography stage.
STAGE_ORDER: tuple[SourceKind, ...] = (
    SourceKind.MEMBERSHIP,
    SourceKind.BIOGRAPHY,
    SourceKind.GENDER,
    SourceKind.AREA,
    SourceKind.CORRECTIONS,
    SourceKind.LEGACY_IDS,
)
BIOGRAPHY_KINDS = frozenset({SourceKind.BIOGRAPHY, SourceKind.WIKIDATA_RAW})
SINGLETON_KINDS = frozenset(
    {SourceKind.GENDER, SourceKind.AREA, SourceKind.CORRECTIONS, SourceKind.LEGACY_IDS}
)


class PatchStrategy(StrEnum):
    PREFER_EXISTING = "prefer_existing"
    PREFER_INCOMING = "prefer_incoming"
    FILL_IF_EMPTY = "fill_if_empty"
    CONCAT_UNIQUE = "concat_unique"


class AreaMode(StrEnum):
    ID = "id"
    NAME = "name"


@dataclass(frozen=True, slots=True)
class FieldMatch:
    """Compare ``incoming`` on the new row against ``existing`` on canonical rows."""

    incoming: str
    existing: str

    @classmethod
    def same(cls, name: str) -> FieldMatch:
        return cls(incoming=name, existing=name)


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePolicy:
    match_fields: tuple[FieldMatch, ...] = ()
    term_match: bool = False
    fuzzy: bool = False
    patch: Mapping[str, PatchStrategy] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "patch", MappingProxyType(dict(self.patch)))

    def strategy_for(self, field_name: str) -> PatchStrategy:
        return self.patch.get(field_name, PatchStrategy.FILL_IF_EMPTY)


@dataclass(frozen=True, slots=True, kw_only=True)
class Source:
    """Immutable declaration of one input feed for a run."""

    kind: SourceKind
    file: Path
    fields: tuple[str, ...] = ()
    merge_policy: MergePolicy | None = None
    reconciliation_file: Path | None = None
    id_map_file: Path | None = None
    area_mode: AreaMode = AreaMode.NAME
    area_overrides: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "area_overrides", MappingProxyType(dict(self.area_overrides)))

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def is_membership(self) -> bool:
        return self.kind is SourceKind.MEMBERSHIP

    @property
    def is_biography(self) -> bool:
        return self.kind in BIOGRAPHY_KINDS

    @property
    def stage(self) -> int:
        kind = SourceKind.BIOGRAPHY if self.is_biography else self.kind
        return STAGE_ORDER.index(kind)

    def resolved_id_map_file(self) -> Path:
        """Where the identifier map for this (membership) source lives."""

        if self.id_map_file is not None:
            return self.id_map_file
        return self.file.with_name(f"{self.file.stem}.idmap.csv")
