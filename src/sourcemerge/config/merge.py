"""Merge run configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Final

from .env import env_flag, env_float, env_int
from .errors import ConfigurationError

DEFAULT_AMBIGUITY_THRESHOLD: Final[int] = 1
DEFAULT_UNMATCHED_SAMPLE_SIZE: Final[int] = 10
DEFAULT_CANDIDATE_LIMIT: Final[int] = 5
DEFAULT_GENDER_MIN_VOTES: Final[int] = 5
DEFAULT_GENDER_WINNING_SHARE: Final[float] = 0.8
DEFAULT_OUTPUT_FILENAME: Final[str] = "merged.csv"


@dataclass(frozen=True, slots=True)
class GenderTallyConfig:
    min_votes: int = DEFAULT_GENDER_MIN_VOTES
    winning_share: float = DEFAULT_GENDER_WINNING_SHARE

    def __post_init__(self) -> None:
        if self.min_votes < 1:
            raise ConfigurationError("Gender tally needs at least one vote")
        if not 0.5 < self.winning_share <= 1.0:
            raise ConfigurationError(
                f"Gender winning share must be in (0.5, 1.0], got {self.winning_share}"
            )


@dataclass(frozen=True, slots=True)
class MergeConfig:
    """Knobs for one merge run.

    ``ambiguity_threshold`` is the number of distinct canonical uuids a match may
    span before the incoming row is skipped as ambiguous.
    """

    generate_reconciliation: bool = False
    ambiguity_threshold: int = DEFAULT_AMBIGUITY_THRESHOLD
    unmatched_sample_size: int = DEFAULT_UNMATCHED_SAMPLE_SIZE
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
    gender: GenderTallyConfig = field(default_factory=GenderTallyConfig)
    output_filename: str = DEFAULT_OUTPUT_FILENAME

    def __post_init__(self) -> None:
        if self.ambiguity_threshold < 1:
            raise ConfigurationError("Ambiguity threshold must be at least 1")
        if self.unmatched_sample_size < 0:
            raise ConfigurationError("Unmatched sample size must be non-negative")
        if self.candidate_limit < 1:
            raise ConfigurationError("Candidate limit must be at least 1")

    def with_overrides(
        self,
        *,
        generate_reconciliation: bool | None = None,
        ambiguity_threshold: int | None = None,
    ) -> MergeConfig:
        """Return a copy with CLI-level overrides applied."""

        config = self
        if generate_reconciliation is not None:
            config = replace(config, generate_reconciliation=generate_reconciliation)
        if ambiguity_threshold is not None:
            config = replace(config, ambiguity_threshold=ambiguity_threshold)
        return config


def get_merge_config() -> MergeConfig:
    return MergeConfig(
        generate_reconciliation=env_flag("SOURCEMERGE_GENERATE_RECONCILIATION"),
        ambiguity_threshold=env_int(
            "SOURCEMERGE_AMBIGUITY_THRESHOLD", default=DEFAULT_AMBIGUITY_THRESHOLD, minimum=1
        ),
        unmatched_sample_size=env_int(
            "SOURCEMERGE_UNMATCHED_SAMPLE_SIZE", default=DEFAULT_UNMATCHED_SAMPLE_SIZE, minimum=0
        ),
        candidate_limit=env_int(
            "SOURCEMERGE_CANDIDATE_LIMIT", default=DEFAULT_CANDIDATE_LIMIT, minimum=1
        ),
        gender=GenderTallyConfig(
            min_votes=env_int(
                "SOURCEMERGE_GENDER_MIN_VOTES", default=DEFAULT_GENDER_MIN_VOTES, minimum=1
            ),
            winning_share=env_float(
                "SOURCEMERGE_GENDER_WINNING_SHARE", default=DEFAULT_GENDER_WINNING_SHARE
            ),
        ),
    )
