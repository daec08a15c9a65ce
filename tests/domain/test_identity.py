from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.identity import IdentifierMap, new_uuid

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from sourcemerge.adapters.csv_table import CsvTableStore


def test_new_uuid_is_random() -> None:
    assert new_uuid() != new_uuid()


def test_assign_mints_once_per_native_id(
    tmp_path: Path, store: CsvTableStore, sequential_uuids: Callable[[], str]
) -> None:
    id_map = IdentifierMap.load(store, tmp_path / "members.idmap.csv", mint=sequential_uuids)

    first = id_map.assign("p1")
    second = id_map.assign("p2")

    assert first == "uuid-1"
    assert second == "uuid-2"
    assert id_map.assign("p1") == first
    assert id_map.minted == 2
    assert id_map.lookup("p1") == "uuid-1"


def test_persisted_map_keeps_uuids_across_runs(
    tmp_path: Path, store: CsvTableStore, sequential_uuids: Callable[[], str]
) -> None:
    path = tmp_path / "members.idmap.csv"
    first_run = IdentifierMap.load(store, path, mint=sequential_uuids)
    original = first_run.assign("p1")
    first_run.persist(store)

    second_run = IdentifierMap.load(store, path, mint=lambda: "should-not-be-used")

    assert second_run.assign("p1") == original
    assert second_run.minted == 0
    assert path.read_text(encoding="utf-8") == f"id,uuid\np1,{original}\n"


def test_seed_does_not_override_existing_mapping(
    tmp_path: Path, store: CsvTableStore, sequential_uuids: Callable[[], str]
) -> None:
    id_map = IdentifierMap.load(store, tmp_path / "map.csv", mint=sequential_uuids)
    existing = id_map.assign("p1")

    id_map.seed("p1", "other")
    id_map.seed("p2", "decided")

    assert id_map.lookup("p1") == existing
    assert id_map.assign("p2") == "decided"
    assert "p2" in id_map
    assert id_map.minted == 1


def test_load_rejects_rows_without_uuid(
    write_csv: Callable[..., Path], store: CsvTableStore
) -> None:
    path = write_csv("map.csv", ["id", "uuid"], [["p1", ""]])

    with pytest.raises(MalformedSourceError):
        IdentifierMap.load(store, path)
