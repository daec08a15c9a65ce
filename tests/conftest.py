from __future__ import annotations

import csv
import json
from itertools import count
from typing import TYPE_CHECKING, TypeAlias

import pytest

from sourcemerge.adapters.csv_table import CsvTableStore

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path


WriteCsv: TypeAlias = "Callable[[str, Sequence[str], Sequence[Sequence[str]]], Path]"
ReadCsv: TypeAlias = "Callable[[Path], list[dict[str, str]]]"


@pytest.fixture
def store() -> CsvTableStore:
    return CsvTableStore()


@pytest.fixture
def write_csv(tmp_path: Path) -> WriteCsv:
    def _write(name: str, header: Sequence[str], rows: Sequence[Sequence[str]]) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle)
            writer.writerow(header)
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def read_csv() -> ReadCsv:
    def _read(path: Path) -> list[dict[str, str]]:
        with path.open(encoding="utf-8", newline="") as handle:
            return list(csv.DictReader(handle))

    return _read


@pytest.fixture
def write_instructions(tmp_path: Path) -> Callable[[list[dict[str, object]]], Path]:
    def _write(sources: list[dict[str, object]]) -> Path:
        path = tmp_path / "instructions.json"
        path.write_text(json.dumps({"sources": sources}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sequential_uuids() -> Callable[[], str]:
    counter = count(1)

    def _mint() -> str:
        return f"uuid-{next(counter)}"

    return _mint
