"""Resolve free-text area names to canonical area ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rapidfuzz import fuzz, process

from .contracts import MatchKind
from .normalize import fuzzy_processor, normalize_text, tidy, tokens

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Area:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class AreaMatch:
    area_id: str
    name: str
    match_kind: MatchKind
    score: float = 100.0


@dataclass(slots=True)
class AreaResolver:
    """Override table, then exact name, then (optionally) best fuzzy match.

    A fuzzy candidate must share at least one token with the requested name. With
    fuzzy matching disabled, names that are not known exactly stay unresolved.
    Results, including misses, are memoized per distinct input.
    """

    areas: tuple[Area, ...]
    overrides: Mapping[str, str] = field(default_factory=dict["str", "str"])
    fuzzy: bool = False
    _by_id: dict[str, Area] = field(default_factory=dict["str", "Area"], init=False)
    _by_name: dict[str, Area] = field(default_factory=dict["str", "Area"], init=False)
    _tokens: dict[str, frozenset[str]] = field(
        default_factory=dict["str", "frozenset[str]"], init=False
    )
    _resolved: dict[str, AreaMatch | None] = field(
        default_factory=dict["str", "AreaMatch | None"], init=False
    )

    def __post_init__(self) -> None:
        for area in self.areas:
            self._by_id.setdefault(area.id, area)
            self._by_name.setdefault(tidy(area.name), area)
            self._tokens[area.id] = tokens(area.name)

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, str]],
        *,
        overrides: Mapping[str, str] | None = None,
        fuzzy: bool = False,
    ) -> AreaResolver:
        return cls(
            areas=tuple(Area(id=area_id, name=name) for area_id, name in pairs),
            overrides={tidy(name): area_id for name, area_id in (overrides or {}).items()},
            fuzzy=fuzzy,
        )

    def resolve(self, name: str) -> str | None:
        match = self.match(name)
        return None if match is None else match.area_id

    def match(self, name: str) -> AreaMatch | None:
        if name in self._resolved:
            return self._resolved[name]
        match = self._match(name)
        self._resolved[name] = match
        return match

    def name_for(self, area_id: str) -> str | None:
        area = self._by_id.get(area_id)
        return None if area is None else area.name

    def _match(self, name: str) -> AreaMatch | None:
        cleaned = tidy(name)
        if not cleaned:
            return None

        override_id = self.overrides.get(cleaned)
        if override_id is not None:
            return AreaMatch(area_id=override_id, name=cleaned, match_kind=MatchKind.EXACT)

        area = self._by_name.get(cleaned)
        if area is not None:
            return AreaMatch(area_id=area.id, name=area.name, match_kind=MatchKind.EXACT)

        if not self.fuzzy:
            return None
        return self._fuzzy_match(cleaned)

    def _fuzzy_match(self, name: str) -> AreaMatch | None:
        wanted = tokens(name)
        choices = {
            area.id: area.name
            for area in self.areas
            if wanted & self._tokens.get(area.id, frozenset())
        }
        if not choices:
            return None
        best = process.extractOne(
            name,
            choices,
            scorer=fuzz.WRatio,
            processor=fuzzy_processor,
        )
        if best is None:
            return None
        area_name, score, area_id = best
        match = AreaMatch(
            area_id=str(area_id),
            name=area_name,
            match_kind=MatchKind.FUZZY,
            score=float(score),
        )
        if not _contains_phrase(area_name, name):
            log.info("Matched area %r to %r (%s, score %.1f)", name, area_name, area_id, score)
        return match


def _contains_phrase(haystack: str, needle: str) -> bool:
    normalized_haystack = normalize_text(haystack) or ""
    normalized_needle = normalize_text(needle) or ""
    return f" {normalized_needle} " in f" {normalized_haystack} "
