from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sourcemerge.adapters.csv_table import CsvTableStore
from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.model import Row, normalize_header
from sourcemerge.domain.ports import TableStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


def test_store_satisfies_port() -> None:
    assert isinstance(CsvTableStore(), TableStore)


def test_normalize_header() -> None:
    assert normalize_header("  Given Name ") == "given_name"
    assert normalize_header("UUID") == "uuid"
    assert normalize_header(None) == ""


def test_read_normalizes_headers_and_skips_blank_rows(
    tmp_path: Path, store: CsvTableStore
) -> None:
    path = tmp_path / "members.csv"
    path.write_text("\ufeffID,Full Name\n p1 , Alice \n,\n", encoding="utf-8")

    table = store.read(path)

    assert table.header == ("id", "full_name")
    assert table.rows == (Row({"id": "p1", "full_name": "Alice"}),)


def test_read_rejects_duplicate_columns(
    write_csv: Callable[..., Path], store: CsvTableStore
) -> None:
    path = write_csv("dup.csv", ["id", "Name", "name"], [["p1", "a", "b"]])

    with pytest.raises(MalformedSourceError, match="duplicate column"):
        store.read(path)


def test_read_rejects_ragged_rows(tmp_path: Path, store: CsvTableStore) -> None:
    path = tmp_path / "ragged.csv"
    path.write_text("id,name\np1,Alice,extra\n", encoding="utf-8")

    with pytest.raises(MalformedSourceError, match="more columns"):
        store.read(path)


def test_read_rejects_empty_file(tmp_path: Path, store: CsvTableStore) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    with pytest.raises(MalformedSourceError, match="no header"):
        store.read(path)


def test_write_uses_header_order(tmp_path: Path, store: CsvTableStore) -> None:
    path = tmp_path / "out" / "merged.csv"

    store.write(
        path,
        header=("id", "name"),
        rows=[Row({"name": "Alice, Jr.", "id": "u1", "ignored": "x"})],
    )

    assert path.read_text(encoding="utf-8") == 'id,name\nu1,"Alice, Jr."\n'
    assert store.exists(path)
    assert not (path.parent / ".merged.csv.tmp").exists()


def test_failed_write_keeps_previous_file(tmp_path: Path, store: CsvTableStore) -> None:
    path = tmp_path / "merged.csv"
    path.write_text("id\nu1\n", encoding="utf-8")

    def rows() -> Iterator[Row]:
        yield Row({"id": "u2"})
        raise RuntimeError("disk full")

    with pytest.raises(RuntimeError, match="disk full"):
        store.write(path, header=("id",), rows=rows())

    assert path.read_text(encoding="utf-8") == "id\nu1\n"
    assert not (tmp_path / ".merged.csv.tmp").exists()
