"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sourcemerge.adapters.csv_table import CsvTableStore
from sourcemerge.adapters.instructions import load_instructions
from sourcemerge.config import get_merge_config
from sourcemerge.domain.identity import new_uuid
from sourcemerge.domain.reconciliation import MergeEngine, MergeResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from sourcemerge.config import MergeConfig
    from sourcemerge.domain.ports import TableStore


log = getLogger(__name__)


def merge_sources(
    instructions_path: Path,
    *,
    output_file: Path | None = None,
    config: MergeConfig | None = None,
    store: TableStore | None = None,
    mint: Callable[[], str] = new_uuid,
) -> MergeResult:
    """Merge the sources declared in ``instructions_path`` into one CSV."""

    effective_config = config or get_merge_config()
    effective_store = store or CsvTableStore()
    sources = load_instructions(instructions_path)
    effective_output = output_file or instructions_path.parent / effective_config.output_filename
    log.info(
        "Starting merge: sources=%d, output=%s, generate_reconciliation=%s, "
        "ambiguity_threshold=%d",
        len(sources),
        effective_output,
        effective_config.generate_reconciliation,
        effective_config.ambiguity_threshold,
    )

    engine = MergeEngine(
        effective_store,
        generate_reconciliation=effective_config.generate_reconciliation,
        ambiguity_threshold=effective_config.ambiguity_threshold,
        unmatched_sample_size=effective_config.unmatched_sample_size,
        candidate_limit=effective_config.candidate_limit,
        gender_min_votes=effective_config.gender.min_votes,
        gender_winning_share=effective_config.gender.winning_share,
        mint=mint,
    )
    result = engine.run(sources, output_file=effective_output)

    log.info(
        f"Finished merge: rows={len(result.rows)}, entities={result.entity_count}, "
        f"warnings={len(result.diagnostics.warnings)}"
    )
    return result
