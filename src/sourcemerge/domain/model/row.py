"""Row value records and the canonical pool they are merged into."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple, overload

if TYPE_CHECKING:
    from collections.abc import Iterable

ID_FIELD = "id"
UUID_FIELD = "uuid"


def normalize_header(header: str | None) -> str:
    """Normalize field names so files from different feeds line up."""

    if header is None:
        return ""
    return "_".join(header.strip().lower().split())


class Row(Mapping[str, str]):
    """Immutable mapping of field name to string value.

    Fields a row does not carry read as ``""``; there is no separate "null".
    """

    __slots__ = ("_values",)

    def __init__(
        self, values: Mapping[str, str | None] | Iterable[tuple[str, str | None]] = ()
    ) -> None:
        items = values.items() if isinstance(values, Mapping) else values
        self._values: dict[str, str] = {
            name: "" if value is None else str(value) for name, value in items
        }

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Row({self._values!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return self._values == other._values
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def value(self, name: str) -> str:
        return self._values.get(name, "")

    def has_value(self, name: str) -> bool:
        return bool(self._values.get(name, "").strip())

    @property
    def id(self) -> str:
        return self.value(ID_FIELD)

    @property
    def uuid(self) -> str:
        return self.value(UUID_FIELD)

    def updated(self, changes: Mapping[str, str] | None = None, **fields: str) -> Row:
        """Return a new row with ``changes`` applied on top of this one."""

        merged = dict(self._values)
        if changes:
            merged.update(changes)
        merged.update(fields)
        return Row(merged)


class PoolEntry(NamedTuple):
    """A pool row together with its position."""

    position: int
    row: Row


@dataclass(slots=True)
class MergedPool:
    """Ordered canonical table, addressed by position and indexed by uuid.

    Each row belongs to one entity (``uuid``). An entity may own several rows, one
    per membership, so lookups by uuid return positions in insertion order.
    """

    _rows: list[Row] = field(default_factory=list["Row"])
    _positions_by_uuid: dict[str, list[int]] = field(default_factory=dict["str", "list[int]"])

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    @overload
    def __getitem__(self, position: int) -> Row: ...
    @overload
    def __getitem__(self, position: slice) -> list[Row]: ...
    def __getitem__(self, position: int | slice) -> Row | list[Row]:
        return self._rows[position]

    @property
    def rows(self) -> tuple[Row, ...]:
        return tuple(self._rows)

    def append(self, row: Row) -> int:
        if not row.uuid:
            raise ValueError(f"Row {row.id!r} has no uuid and cannot join the pool")
        position = len(self._rows)
        self._rows.append(row)
        self._positions_by_uuid.setdefault(row.uuid, []).append(position)
        return position

    def replace(self, position: int, row: Row) -> None:
        """Supersede the row at ``position``; the entity it belongs to cannot change."""

        current = self._rows[position]
        if row.uuid != current.uuid:
            raise ValueError(
                f"Cannot replace row for {current.uuid!r} with a row for {row.uuid!r}"
            )
        self._rows[position] = row

    def positions_for(self, uuid: str) -> tuple[int, ...]:
        return tuple(self._positions_by_uuid.get(uuid, ()))

    def entries(self) -> Iterator[PoolEntry]:
        for position, row in enumerate(self._rows):
            yield PoolEntry(position, row)

    def entries_for(self, uuid: str) -> tuple[PoolEntry, ...]:
        return tuple(
            PoolEntry(position, self._rows[position]) for position in self.positions_for(uuid)
        )

    @property
    def uuids(self) -> tuple[str, ...]:
        return tuple(self._positions_by_uuid)
