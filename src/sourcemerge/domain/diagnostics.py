"""Warning accumulator threaded through the merge stages."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable

    from .errors import MergeWarning

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Diagnostics:
    """Collect recoverable problems, deduplicated by ``(category, key)``.

    Warnings recorded since the last boundary are logged together by ``flush`` so
    operators can review them per stage instead of interleaved with progress output.
    """

    warnings: list[MergeWarning] = field(default_factory=list["MergeWarning"])
    _seen: set[tuple[str, Hashable]] = field(default_factory=set["tuple[str, Hashable]"])
    _pending: list[MergeWarning] = field(default_factory=list["MergeWarning"])

    def record(self, warning: MergeWarning) -> bool:
        """Store ``warning`` unless an equivalent one was already recorded."""

        identity = (warning.category, warning.key)
        if identity in self._seen:
            return False
        self._seen.add(identity)
        self.warnings.append(warning)
        self._pending.append(warning)
        return True

    def flush(self, stage: str) -> tuple[MergeWarning, ...]:
        """Log and return the warnings recorded since the previous flush."""

        pending = tuple(self._pending)
        self._pending.clear()
        if pending:
            log.warning("%s: %d issue(s)", stage, len(pending))
            for warning in pending:
                log.warning("  %s", warning)
        return pending

    def of_category(self, category: str) -> tuple[MergeWarning, ...]:
        return tuple(warning for warning in self.warnings if warning.category == category)

    def counts(self) -> dict[str, int]:
        return dict(Counter(warning.category for warning in self.warnings))
