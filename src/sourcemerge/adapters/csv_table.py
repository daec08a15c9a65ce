"""CSV implementation of the table store port."""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

from sourcemerge.domain.errors import MalformedSourceError
from sourcemerge.domain.model import Row, normalize_header
from sourcemerge.domain.ports import Table

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

log = logging.getLogger(__name__)


class CsvTableStore:
    """Read and write UTF-8 CSV files."""

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def read(self, path: Path) -> Table:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.DictReader(handle)
            raw_headers = reader.fieldnames or []
            header = tuple(normalize_header(name) for name in raw_headers)
            if not header:
                raise MalformedSourceError(path, "file has no header row")
            if "" in header:
                raise MalformedSourceError(path, "header contains an empty column name")
            duplicates = sorted({name for name in header if header.count(name) > 1})
            if duplicates:
                raise MalformedSourceError(path, f"duplicate column(s): {', '.join(duplicates)}")

            rows: list[Row] = []
            for line_number, raw_row in enumerate(reader, start=2):
                if None in raw_row:
                    # DictReader collects surplus cells under the ``None`` key.
                    raise MalformedSourceError(
                        path, f"row {line_number} has more columns than the header"
                    )
                values = [(raw_row.get(name) or "").strip() for name in raw_headers]
                if not any(values):
                    continue
                rows.append(Row(zip(header, values, strict=True)))

        log.debug("Read %d row(s) from %s", len(rows), path)
        return Table(header=header, rows=tuple(rows))

    def write(self, path: Path, *, header: Sequence[str], rows: Iterable[Row]) -> None:
        """Write ``rows`` under ``header``; fields outside the header are dropped."""

        path.parent.mkdir(parents=True, exist_ok=True)
        staging = path.with_name(f".{path.name}.tmp")
        count = 0
        try:
            with staging.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle, lineterminator="\n")
                writer.writerow(header)
                for row in rows:
                    writer.writerow([row.value(name) for name in header])
                    count += 1
            staging.replace(path)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise
        log.debug("Wrote %d row(s) to %s", count, path)
