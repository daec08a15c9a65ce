from __future__ import annotations

import logging

import pytest

from sourcemerge.domain.reconciliation import AreaResolver, MatchKind
from sourcemerge.domain.reconciliation import areas as areas_module

AREAS = (
    ("ocd-division/country:ke/constituency:1", "Nairobi East Constituency"),
    ("ocd-division/country:ke/constituency:2", "Mombasa Central Constituency"),
    ("ocd-division/country:ke/constituency:3", "Kisumu"),
)


def test_exact_name_wins() -> None:
    resolver = AreaResolver.from_pairs(AREAS)

    match = resolver.match("  Kisumu ")

    assert match is not None
    assert match.area_id == "ocd-division/country:ke/constituency:3"
    assert match.match_kind is MatchKind.EXACT


def test_fuzzy_fallback_requires_shared_token() -> None:
    resolver = AreaResolver.from_pairs(AREAS, fuzzy=True)

    assert resolver.resolve("Nairobi East") == "ocd-division/country:ke/constituency:1"
    assert resolver.resolve("Zzzqq") is None


def test_fuzzy_disabled_leaves_unknown_names_unresolved() -> None:
    resolver = AreaResolver.from_pairs(AREAS)

    assert resolver.resolve("Nairobi East") is None


def test_override_takes_precedence() -> None:
    resolver = AreaResolver.from_pairs(
        AREAS,
        overrides={"Nairobi  East": "ocd-division/country:ke/constituency:2"},
        fuzzy=True,
    )

    assert resolver.resolve("Nairobi East") == "ocd-division/country:ke/constituency:2"


def test_fuzzy_match_outside_phrase_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    resolver = AreaResolver.from_pairs(AREAS, fuzzy=True)

    with caplog.at_level(logging.INFO, logger=areas_module.__name__):
        match = resolver.match("East Nairobi")

    assert match is not None
    assert match.match_kind is MatchKind.FUZZY
    assert "Matched area 'East Nairobi'" in caplog.text


def test_results_are_memoized(monkeypatch: pytest.MonkeyPatch) -> None:
    resolver = AreaResolver.from_pairs(AREAS, fuzzy=True)
    calls: list[str] = []
    extract_one = areas_module.process.extractOne

    def counting_extract_one(query: str, *args: object, **kwargs: object) -> object:
        calls.append(query)
        return extract_one(query, *args, **kwargs)

    monkeypatch.setattr(areas_module.process, "extractOne", counting_extract_one)

    first = resolver.resolve("Mombasa")
    second = resolver.resolve("Mombasa")

    assert first == second == "ocd-division/country:ke/constituency:2"
    assert calls == ["Mombasa"]


def test_name_for_known_and_unknown_ids() -> None:
    resolver = AreaResolver.from_pairs(AREAS)

    assert resolver.name_for("ocd-division/country:ke/constituency:3") == "Kisumu"
    assert resolver.name_for("ocd-division/country:ke/constituency:9") is None
