"""Error taxonomy for merge runs.

Two families live here:

- ``MergeError`` subclasses are structural and fatal. They are raised and abort
  the run before (or instead of) writing output.
- ``MergeWarning`` subclasses describe content-level problems with individual
  rows. Stages build them and hand them to ``Diagnostics``; the run continues.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Hashable, Sequence
    from pathlib import Path


class MergeError(RuntimeError):
    """Base class for fatal merge errors."""


class MissingInputError(MergeError):
    """A declared input file does not exist."""

    def __init__(self, path: Path, *, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"Missing input file: {path}")


class MissingReconciliationError(MissingInputError):
    """A source requires a reconciliation file that has not been produced yet."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            path,
            message=(
                f"Missing reconciliation file: {path}. Rerun with --generate-reconciliation "
                "(or SOURCEMERGE_GENERATE_RECONCILIATION=1), complete the uuid column, "
                "then merge again."
            ),
        )


class SourceDeclarationError(MergeError):
    """The declared set of sources cannot be merged as given."""


class MalformedSourceError(MergeError):
    """A source file cannot be loaded as a table."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Malformed source {path}: {detail}")


class ReconciliationPendingError(MergeError):
    """Reconciliation files were written and need human annotation."""

    def __init__(self, paths: Sequence[Path]) -> None:
        self.paths = tuple(paths)
        listed = ", ".join(str(path) for path in self.paths)
        super().__init__(
            f"Reconciliation files written for review: {listed}. "
            "Fill in the uuid column and rerun without generation."
        )


class MergeWarning(Exception):
    """Base class for recoverable, row-level merge problems."""

    category: ClassVar[str] = "warning"

    @property
    def key(self) -> Hashable:
        return str(self)


class AmbiguousMatchError(MergeWarning):
    """Candidates for one incoming row span more than the allowed number of uuids."""

    category = "ambiguous_match"

    def __init__(self, *, source: str, row_id: str, uuids: Sequence[str]) -> None:
        self.source = source
        self.row_id = row_id
        self.uuids = tuple(uuids)
        super().__init__(
            f"{source}: row {row_id} matches multiple entities: {'; '.join(self.uuids)}"
        )

    @property
    def key(self) -> Hashable:
        return (self.source, self.row_id)


class FieldConflictError(MergeWarning):
    """Two sources (or a correction) disagree about a non-empty field value."""

    category = "field_conflict"

    def __init__(
        self,
        *,
        uuid: str,
        field: str,
        existing: str,
        incoming: str,
        origin: str | None = None,
    ) -> None:
        self.uuid = uuid
        self.field = field
        self.existing = existing
        self.incoming = incoming
        self.origin = origin
        suffix = f" from {origin}" if origin else ""
        super().__init__(
            f"Mismatch in {field} for {uuid}: {existing!r} vs {incoming!r}{suffix}"
        )

    @property
    def key(self) -> Hashable:
        return (self.uuid, self.field, self.existing, self.incoming)


class UnresolvedReferenceError(MergeWarning):
    """A reference (area id, area name, correction uuid) has no target."""

    category = "unresolved_reference"

    def __init__(self, *, kind: str, value: str, subject: str | None = None) -> None:
        self.kind = kind
        self.value = value
        self.subject = subject
        detail = f" for {subject}" if subject else ""
        super().__init__(f"Could not resolve {kind} {value!r}{detail}")

    @property
    def key(self) -> Hashable:
        return (self.kind, self.value, self.subject)
