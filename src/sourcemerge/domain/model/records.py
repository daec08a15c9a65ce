"""Small value records read from auxiliary tables."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ReconciliationDecision:
    """Human-adjudicated link from an incoming row id to a canonical uuid."""

    incoming_id: str
    uuid: str


@dataclass(frozen=True, slots=True)
class Correction:
    """Replace ``field`` on every row of ``uuid`` when it still reads ``old``."""

    uuid: str
    field: str
    old: str
    new: str


@dataclass(frozen=True, slots=True)
class LegacyId:
    uuid: str
    legacy: str
