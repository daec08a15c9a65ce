"""Turn crowd-sourced gender votes into one answer per uuid."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sourcemerge.domain.errors import MalformedSourceError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from sourcemerge.domain.model import Row

log = logging.getLogger(__name__)

GENDER_FIELD = "gender"
VOTE_FIELDS = ("female", "male", "other")


def tally_gender_votes(
    rows: Iterable[Row],
    *,
    path: Path,
    min_votes: int,
    winning_share: float,
) -> dict[str, str]:
    """Return ``{uuid: gender}`` for every entity with a clear winner.

    Rows either carry vote counts (``female``/``male``/``other``) or a ready-made
    ``gender`` value. Vote counts need at least ``min_votes`` votes and one option
    holding ``winning_share`` of them; anything less is left undecided.
    """

    results: dict[str, str] = {}
    undecided = 0
    for row in rows:
        uuid = row.uuid
        if not uuid:
            raise MalformedSourceError(path, f"gender row without uuid: {row!r}")
        winner = _winner(row, path=path, min_votes=min_votes, winning_share=winning_share)
        if winner is None:
            undecided += 1
            continue
        results[uuid] = winner
    log.debug("Gender tally: %d decided, %d undecided", len(results), undecided)
    return results


def _winner(row: Row, *, path: Path, min_votes: int, winning_share: float) -> str | None:
    if not any(row.has_value(option) for option in VOTE_FIELDS):
        value = row.value(GENDER_FIELD).strip().lower()
        return value or None

    votes = {option: _count(row, option, path=path) for option in VOTE_FIELDS}
    total = sum(votes.values())
    if total < min_votes:
        return None
    option, count = max(votes.items(), key=lambda item: item[1])
    if count / total < winning_share:
        return None
    return option


def _count(row: Row, option: str, *, path: Path) -> int:
    raw = row.value(option).strip()
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError as exc:
        raise MalformedSourceError(
            path, f"non-numeric {option} votes for {row.uuid}: {raw!r}"
        ) from exc
