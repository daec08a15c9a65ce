"""Pydantic models describing ``instructions.json`` documents."""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sourcemerge.domain.model import AreaMode, PatchStrategy, SourceKind

# Older instruction files name some kinds after the feed they came from.
KIND_ALIASES: Final[dict[str, SourceKind]] = {
    "person": SourceKind.BIOGRAPHY,
    "wikidata": SourceKind.WIKIDATA_RAW,
    "gender-balance": SourceKind.GENDER,
    "ocd": SourceKind.AREA,
    "legacy": SourceKind.LEGACY_IDS,
}


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class InstructionsBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class FieldMatchPayload(InstructionsBaseModel):
    incoming: str = Field(alias="incoming_field", min_length=1)
    existing: str = Field(alias="existing_field", min_length=1)


class MergePayload(InstructionsBaseModel):
    match: list[str | FieldMatchPayload] = Field(default_factory=list)
    term_match: bool = False
    fuzzy: bool = False
    patch: dict[str, PatchStrategy] = Field(default_factory=dict)
    reconciliation_file: str | None = None

    _normalize_reconciliation_file = field_validator("reconciliation_file", mode="before")(
        _blank_to_none
    )


class SourcePayload(InstructionsBaseModel):
    # Entries also carry keys for the acquisition step, such as ``create``.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    file: str = Field(min_length=1)
    kind: SourceKind = Field(alias="type")
    fields: list[str] = Field(default_factory=list)
    merge: MergePayload | None = None
    id_map_file: str | None = None
    area_mode: AreaMode = AreaMode.NAME
    overrides: dict[str, str] = Field(default_factory=dict)
    # ``generate: "area"`` in older files asks for the area_id join.
    generate: str | None = None

    _normalize_optional_text = field_validator("id_map_file", "generate", mode="before")(
        _blank_to_none
    )

    @field_validator("kind", mode="before")
    @classmethod
    def _resolve_kind_alias(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return KIND_ALIASES.get(normalized, normalized)
        return value


class InstructionsDocument(BaseModel):
    # Documents may carry sections for other tools; only ``sources`` is read here.
    model_config = ConfigDict(extra="ignore")

    sources: list[SourcePayload] = Field(min_length=1)
