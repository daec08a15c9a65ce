"""Text normalization shared by matching, patching and area resolution."""

from __future__ import annotations

import unicodedata
from collections.abc import Hashable
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from sourcemerge.domain.model import FieldMatch, Row

MatchKey: TypeAlias = tuple[Hashable, ...]

# Separator used for multi-valued cells.
VALUE_SEPARATOR = ";"


def tidy(value: str | None) -> str:
    """Collapse runs of whitespace and strip the ends."""

    if value is None:
        return ""
    return " ".join(value.split())


def normalize_text(value: str | None) -> str | None:
    """Case, width and punctuation insensitive form of ``value``; ``None`` when blank."""

    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    text = "".join(
        " " if unicodedata.category(ch).startswith("P") else ch for ch in text
    )
    text = " ".join(text.split())
    return text or None


def fuzzy_processor(value: str) -> str:
    """Processor for rapidfuzz scorers; never returns ``None``."""

    return normalize_text(value) or ""


def tokens(value: str | None) -> frozenset[str]:
    normalized = normalize_text(value)
    if normalized is None:
        return frozenset()
    return frozenset(normalized.split())


def same_value(left: str | None, right: str | None) -> bool:
    """Whether two cell values should be treated as equal when patching."""

    return tidy(left).casefold() == tidy(right).casefold()


def split_values(value: str | None) -> list[str]:
    return [part for part in (tidy(item) for item in (value or "").split(VALUE_SEPARATOR)) if part]


def match_key(row: Row, fields: tuple[FieldMatch, ...], *, incoming: bool) -> MatchKey | None:
    """Build the exact-match key for ``row``; ``None`` if any component is blank."""

    if not fields:
        return None
    values: list[Hashable] = []
    for field_match in fields:
        name = field_match.incoming if incoming else field_match.existing
        normalized = normalize_text(row.value(name))
        if normalized is None:
            return None
        values.append(normalized)
    return tuple(values)
