"""Stable native-id to uuid associations for membership sources."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.model import ID_FIELD, UUID_FIELD, Row

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from sourcemerge.domain.ports import TableStore

log = logging.getLogger(__name__)


def new_uuid() -> str:
    return str(uuid4())


@dataclass(slots=True)
class IdentifierMap:
    """Native-id -> uuid map scoped to one source.

    Entries loaded from a previous run are never reassigned, which is what keeps
    canonical identifiers stable across runs.
    """

    path: Path
    mint: Callable[[], str] = new_uuid
    _uuid_by_id: dict[str, str] = field(default_factory=dict["str", "str"])
    minted: int = 0

    @classmethod
    def load(
        cls,
        store: TableStore,
        path: Path,
        *,
        mint: Callable[[], str] = new_uuid,
    ) -> IdentifierMap:
        """Read ``path`` if it exists, otherwise start an empty map."""

        id_map = cls(path=path, mint=mint)
        if not store.exists(path):
            log.info("No identifier map at %s; starting fresh", path)
            return id_map
        for row in store.read(path).rows:
            if not row.id or not row.uuid:
                raise MalformedSourceError(path, f"identifier map row without id/uuid: {row!r}")
            id_map._link(row.id, row.uuid)
        log.debug("Loaded %d identifier(s) from %s", len(id_map), path)
        return id_map

    def __len__(self) -> int:
        return len(self._uuid_by_id)

    def __contains__(self, native_id: object) -> bool:
        return native_id in self._uuid_by_id

    def lookup(self, native_id: str) -> str | None:
        return self._uuid_by_id.get(native_id)

    def assign(self, native_id: str) -> str:
        """Return the uuid for ``native_id``, minting one the first time it is seen."""

        existing = self._uuid_by_id.get(native_id)
        if existing is not None:
            return existing
        uuid = self.mint()
        self._link(native_id, uuid)
        self.minted += 1
        return uuid

    def seed(self, native_id: str, uuid: str) -> None:
        """Record an adjudicated decision; a prior mapping for the id wins."""

        existing = self._uuid_by_id.get(native_id)
        if existing is not None:
            if existing != uuid:
                log.warning(
                    "Ignoring reconciliation of %s to %s: already mapped to %s",
                    native_id,
                    uuid,
                    existing,
                )
            return
        self._link(native_id, uuid)

    def persist(self, store: TableStore) -> None:
        rows = (
            Row({ID_FIELD: native_id, UUID_FIELD: uuid})
            for native_id, uuid in sorted(self._uuid_by_id.items())
        )
        store.write(self.path, header=(ID_FIELD, UUID_FIELD), rows=rows)
        log.info("Wrote %d identifier(s) to %s (%d new)", len(self), self.path, self.minted)

    def _link(self, native_id: str, uuid: str) -> None:
        self._uuid_by_id[native_id] = uuid
