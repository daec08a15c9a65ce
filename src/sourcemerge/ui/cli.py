from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from sourcemerge.app import merge_sources
from sourcemerge.config import ConfigurationError, configure_logging, get_merge_config
from sourcemerge.domain.errors import ReconciliationPendingError, SourceDeclarationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_RECONCILIATION_PENDING = 3
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge tabular sources into one canonical CSV")
    subparsers = parser.add_subparsers(dest="command", required=True)

    merge = subparsers.add_parser("merge", help="Run a merge from an instructions file")
    merge.add_argument(
        "instructions",
        type=Path,
        help="Path to instructions.json; source paths are resolved relative to it",
    )
    merge.add_argument(
        "--output",
        type=Path,
        help="Output CSV (defaults to merged.csv beside the instructions)",
    )
    merge.add_argument(
        "--generate-reconciliation",
        action="store_true",
        default=None,
        help="Write reconciliation files for review instead of requiring them",
    )
    merge.add_argument(
        "--ambiguity-threshold",
        type=int,
        help="Distinct uuids a match may span before it is skipped (defaults to config)",
    )
    merge.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=parsed_args.log_level)

    try:
        config = get_merge_config().with_overrides(
            generate_reconciliation=parsed_args.generate_reconciliation,
            ambiguity_threshold=parsed_args.ambiguity_threshold,
        )
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)

    try:
        if parsed_args.command == "merge":
            merge_sources(parsed_args.instructions, output_file=parsed_args.output, config=config)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ReconciliationPendingError as exc:
        log.warning("%s", exc)
        sys.exit(EXIT_RECONCILIATION_PENDING)
    except (ConfigurationError, SourceDeclarationError):
        log.exception("Invalid merge instructions")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during merge")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
