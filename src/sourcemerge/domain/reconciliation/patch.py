"""Merge one incoming row into an existing canonical row."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sourcemerge.domain.errors import FieldConflictError
from sourcemerge.domain.model import ID_FIELD, UUID_FIELD, PatchStrategy

from .normalize import VALUE_SEPARATOR, same_value, split_values

if TYPE_CHECKING:
    from sourcemerge.domain.model import MergePolicy, Row

# Identity columns belong to the canonical row and are never taken from a source.
PROTECTED_FIELDS = frozenset({ID_FIELD, UUID_FIELD})


@dataclass(slots=True)
class PatchResult:
    row: Row
    changed: dict[str, str] = field(default_factory=dict["str", "str"])
    new_headers: list[str] = field(default_factory=list["str"])
    conflicts: list[FieldConflictError] = field(default_factory=list["FieldConflictError"])


def patch(
    existing: Row,
    incoming: Row,
    policy: MergePolicy,
    *,
    origin: str | None = None,
) -> PatchResult:
    """Return ``existing`` updated with ``incoming`` under ``policy``.

    Conflicting non-empty values under ``fill_if_empty`` leave the existing value
    in place and are reported, preferring correctness over completeness.
    """

    changes: dict[str, str] = {}
    new_headers: list[str] = []
    conflicts: list[FieldConflictError] = []

    for name, incoming_value in incoming.items():
        if name in PROTECTED_FIELDS or not incoming_value.strip():
            continue
        if name not in existing:
            new_headers.append(name)
        current = existing.value(name)
        strategy = policy.strategy_for(name)
        merged = _merge_value(current, incoming_value, strategy)
        if merged is None:
            conflicts.append(
                FieldConflictError(
                    uuid=existing.uuid,
                    field=name,
                    existing=current,
                    incoming=incoming_value,
                    origin=origin or incoming.id or None,
                )
            )
            continue
        if merged != current:
            changes[name] = merged

    row = existing.updated(changes) if changes else existing
    return PatchResult(row=row, changed=changes, new_headers=new_headers, conflicts=conflicts)


def _merge_value(current: str, incoming: str, strategy: PatchStrategy) -> str | None:
    """Combined value for one field, or ``None`` for an unresolvable conflict."""

    if not current.strip():
        return incoming
    if strategy is PatchStrategy.CONCAT_UNIQUE:
        return _concat_unique(current, incoming)
    if same_value(current, incoming):
        return current
    if strategy is PatchStrategy.PREFER_INCOMING:
        return incoming
    if strategy is PatchStrategy.PREFER_EXISTING:
        return current
    return None


def _concat_unique(current: str, incoming: str) -> str:
    values: dict[str, str] = {}
    for value in (*split_values(current), *split_values(incoming)):
        values.setdefault(value.casefold(), value)
    return VALUE_SEPARATOR.join(values.values())
