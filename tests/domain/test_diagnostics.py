from __future__ import annotations

import logging

import pytest

from sourcemerge.domain.diagnostics import Diagnostics
from sourcemerge.domain.errors import (
    AmbiguousMatchError,
    FieldConflictError,
    UnresolvedReferenceError,
)


def test_record_deduplicates_by_category_and_key() -> None:
    diagnostics = Diagnostics()
    conflict = FieldConflictError(uuid="u1", field="email", existing="a@x", incoming="b@x")

    assert diagnostics.record(conflict)
    assert not diagnostics.record(
        FieldConflictError(
            uuid="u1", field="email", existing="a@x", incoming="b@x", origin="other.csv"
        )
    )
    assert diagnostics.record(UnresolvedReferenceError(kind="area", value="Nowhere"))

    assert diagnostics.counts() == {"field_conflict": 1, "unresolved_reference": 1}
    assert diagnostics.of_category("field_conflict") == (conflict,)


def test_flush_logs_pending_warnings_once(caplog: pytest.LogCaptureFixture) -> None:
    diagnostics = Diagnostics()
    diagnostics.record(AmbiguousMatchError(source="bios.csv", row_id="b1", uuids=["u1", "u2"]))

    with caplog.at_level(logging.WARNING):
        flushed = diagnostics.flush("biography (bios.csv)")
        second = diagnostics.flush("gender")

    assert len(flushed) == 1
    assert second == ()
    assert "biography (bios.csv): 1 issue(s)" in caplog.text
    assert "row b1 matches multiple entities: u1; u2" in caplog.text
    assert len(diagnostics.warnings) == 1
