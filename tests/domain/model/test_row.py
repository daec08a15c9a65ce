from __future__ import annotations

import pytest

from sourcemerge.domain.model import MergedPool, Row


def test_row_reads_missing_fields_as_empty() -> None:
    row = Row({"id": "p1", "name": None})

    assert row.value("name") == ""
    assert row.value("email") == ""
    assert not row.has_value("email")
    assert "email" not in row


def test_row_updated_returns_new_row() -> None:
    row = Row({"id": "p1", "name": "Alice"})

    updated = row.updated({"email": "a@x"}, uuid="u1")

    assert updated == Row({"id": "p1", "name": "Alice", "email": "a@x", "uuid": "u1"})
    assert "email" not in row


def test_pool_rejects_rows_without_uuid() -> None:
    pool = MergedPool()

    with pytest.raises(ValueError, match="no uuid"):
        pool.append(Row({"id": "p1"}))


def test_pool_indexes_rows_by_uuid_in_insertion_order() -> None:
    pool = MergedPool()
    pool.append(Row({"id": "p1", "uuid": "u1", "term": "1"}))
    pool.append(Row({"id": "p2", "uuid": "u2", "term": "1"}))
    pool.append(Row({"id": "p1", "uuid": "u1", "term": "2"}))

    assert pool.positions_for("u1") == (0, 2)
    assert [entry.row.value("term") for entry in pool.entries_for("u1")] == ["1", "2"]
    assert pool.uuids == ("u1", "u2")
    assert pool.entries_for("missing") == ()


def test_pool_replace_keeps_entity() -> None:
    pool = MergedPool()
    position = pool.append(Row({"id": "p1", "uuid": "u1"}))

    pool.replace(position, pool[position].updated(email="a@x"))
    assert pool[position].value("email") == "a@x"

    with pytest.raises(ValueError, match="Cannot replace"):
        pool.replace(position, Row({"id": "p1", "uuid": "u2"}))
