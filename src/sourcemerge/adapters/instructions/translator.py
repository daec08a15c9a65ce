"""Translate instruction payloads into domain source declarations."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from sourcemerge.config.errors import InvalidInstructionsError, MissingConfigurationError
from sourcemerge.domain.model import (
    AreaMode,
    FieldMatch,
    MergePolicy,
    Source,
    normalize_header,
)

from .schema import FieldMatchPayload, InstructionsDocument

if TYPE_CHECKING:
    from pathlib import Path

    from .schema import MergePayload, SourcePayload

log = getLogger(__name__)


def load_instructions(path: Path) -> tuple[Source, ...]:
    """Read ``path`` and return its sources with paths resolved beside it."""

    if not path.is_file():
        raise MissingConfigurationError(f"Instructions file not found: {path}")
    try:
        document = InstructionsDocument.model_validate_json(path.read_bytes())
    except ValidationError as exc:
        raise InvalidInstructionsError(path, _describe(exc)) from exc
    sources = translate_instructions(document, base_dir=path.parent)
    log.debug("Loaded %d source declaration(s) from %s", len(sources), path)
    return sources


def translate_instructions(
    document: InstructionsDocument, *, base_dir: Path
) -> tuple[Source, ...]:
    return tuple(to_source(payload, base_dir=base_dir) for payload in document.sources)


def to_source(payload: SourcePayload, *, base_dir: Path) -> Source:
    merge = payload.merge
    return Source(
        kind=payload.kind,
        file=base_dir / payload.file,
        fields=tuple(dict.fromkeys(normalize_header(name) for name in payload.fields)),
        merge_policy=None if merge is None else to_merge_policy(merge),
        reconciliation_file=(
            None
            if merge is None or merge.reconciliation_file is None
            else base_dir / merge.reconciliation_file
        ),
        id_map_file=None if payload.id_map_file is None else base_dir / payload.id_map_file,
        area_mode=AreaMode.ID if payload.generate == "area" else payload.area_mode,
        area_overrides=payload.overrides,
    )


def to_merge_policy(payload: MergePayload) -> MergePolicy:
    return MergePolicy(
        match_fields=tuple(_to_field_match(entry) for entry in payload.match),
        term_match=payload.term_match,
        fuzzy=payload.fuzzy,
        patch={normalize_header(name): strategy for name, strategy in payload.patch.items()},
    )


def _to_field_match(entry: str | FieldMatchPayload) -> FieldMatch:
    if isinstance(entry, FieldMatchPayload):
        return FieldMatch(
            incoming=normalize_header(entry.incoming),
            existing=normalize_header(entry.existing),
        )
    return FieldMatch.same(normalize_header(entry))


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
        for error in exc.errors()
    )
