"""Ports for reading and writing tabular files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from sourcemerge.domain.model import Row


@dataclass(frozen=True, slots=True)
class Table:
    """Rows read from one file together with its header in file order."""

    header: tuple[str, ...]
    rows: tuple[Row, ...]

    def __len__(self) -> int:
        return len(self.rows)


@runtime_checkable
class TableStore(Protocol):
    """Persistence contract for delimited tables."""

    def exists(self, path: Path) -> bool: ...

    def read(self, path: Path) -> Table: ...

    def write(self, path: Path, *, header: Sequence[str], rows: Iterable[Row]) -> None: ...
