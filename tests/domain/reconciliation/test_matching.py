from __future__ import annotations

from sourcemerge.domain.model import FieldMatch, MergedPool, MergePolicy, Row
from sourcemerge.domain.reconciliation import (
    AmbiguousResolution,
    ExactMatcher,
    MatchKind,
    ReconciledMatcher,
    ResolvedResolution,
    UnmatchedResolution,
    classify,
)


def _pool(*rows: dict[str, str]) -> MergedPool:
    pool = MergedPool()
    for row in rows:
        pool.append(Row(row))
    return pool


def test_exact_match_respects_term() -> None:
    pool = _pool(
        {"id": "p1", "uuid": "u1", "name": "Alice Smith", "term": "1"},
        {"id": "p1", "uuid": "u1", "name": "Alice Smith", "term": "2"},
    )
    policy = MergePolicy(match_fields=(FieldMatch.same("name"),), term_match=True)
    incoming = Row({"id": "b1", "name": "Alice Smith", "term": "2"})

    found = ExactMatcher(pool, policy).find_all(incoming)

    assert [entry.position for entry in found] == [1]


def test_exact_match_without_term_returns_every_row_of_entity() -> None:
    pool = _pool(
        {"id": "p1", "uuid": "u1", "name": "Alice Smith", "term": "1"},
        {"id": "p1", "uuid": "u1", "name": "Alice Smith", "term": "2"},
    )
    policy = MergePolicy(match_fields=(FieldMatch.same("name"),))

    found = ExactMatcher(pool, policy).find_all(Row({"id": "b1", "name": "  alice   SMITH "}))

    assert [entry.position for entry in found] == [0, 1]


def test_exact_match_maps_incoming_to_existing_field() -> None:
    pool = _pool({"id": "p1", "uuid": "u1", "name": "Alice Smith"})
    policy = MergePolicy(match_fields=(FieldMatch(incoming="full_name", existing="name"),))

    found = ExactMatcher(pool, policy).find_all(Row({"id": "b1", "full_name": "Alice Smith"}))

    assert [entry.row.uuid for entry in found] == ["u1"]


def test_blank_key_never_matches() -> None:
    pool = _pool({"id": "p1", "uuid": "u1", "name": ""})
    policy = MergePolicy(match_fields=(FieldMatch.same("name"),))

    assert ExactMatcher(pool, policy).find_all(Row({"id": "b1", "name": ""})) == ()


def test_reconciled_match_follows_decisions() -> None:
    pool = _pool(
        {"id": "p1", "uuid": "u1", "name": "Alice Smith"},
        {"id": "p2", "uuid": "u2", "name": "Bob Jones"},
    )
    matcher = ReconciledMatcher(pool, MergePolicy(), {"Q42": "u2"})

    found = matcher.find_all(Row({"id": "Q42", "name": "Robert Jones"}))

    assert [entry.row.id for entry in found] == ["p2"]
    assert matcher.find_all(Row({"id": "Q7"})) == ()


def test_classify_outcomes() -> None:
    pool = _pool(
        {"id": "p1", "uuid": "u1", "name": "John Smith"},
        {"id": "p2", "uuid": "u2", "name": "John Smith"},
    )
    candidates = tuple(pool.entries())

    unmatched = classify((), match_kind=MatchKind.EXACT)
    ambiguous = classify(candidates, match_kind=MatchKind.EXACT)
    tolerated = classify(candidates, match_kind=MatchKind.EXACT, threshold=2)

    assert isinstance(unmatched, UnmatchedResolution)
    assert isinstance(ambiguous, AmbiguousResolution)
    assert ambiguous.uuids == ("u1", "u2")
    assert isinstance(tolerated, ResolvedResolution)
    assert tolerated.targets == candidates
