from __future__ import annotations

from pathlib import Path

import pytest

from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.model import Row
from sourcemerge.domain.reconciliation.gender import tally_gender_votes

SOURCE = Path("gender.csv")


def _tally(*rows: dict[str, str]) -> dict[str, str]:
    return tally_gender_votes(
        (Row(row) for row in rows), path=SOURCE, min_votes=5, winning_share=0.8
    )


def test_clear_majority_wins() -> None:
    result = _tally({"uuid": "u1", "female": "9", "male": "1", "other": "0"})

    assert result == {"u1": "female"}


def test_too_few_votes_or_split_vote_is_undecided() -> None:
    result = _tally(
        {"uuid": "u1", "female": "3", "male": "0"},
        {"uuid": "u2", "female": "5", "male": "4"},
    )

    assert result == {}


def test_direct_gender_column_is_used_when_no_votes() -> None:
    result = _tally({"uuid": "u1", "gender": " Male "}, {"uuid": "u2", "gender": ""})

    assert result == {"u1": "male"}


def test_row_without_uuid_is_rejected() -> None:
    with pytest.raises(MalformedSourceError, match="without uuid"):
        _tally({"uuid": "", "female": "9"})


def test_non_numeric_votes_are_rejected() -> None:
    with pytest.raises(MalformedSourceError, match="non-numeric"):
        _tally({"uuid": "u1", "female": "lots"})
