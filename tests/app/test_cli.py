from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from sourcemerge.config import InvalidInstructionsError, MergeConfig
from sourcemerge.domain.errors import MalformedSourceError, ReconciliationPendingError
from sourcemerge.ui import cli as cli_module

if TYPE_CHECKING:
    from collections.abc import Callable


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SOURCEMERGE_GENERATE_RECONCILIATION", raising=False)
    monkeypatch.delenv("SOURCEMERGE_AMBIGUITY_THRESHOLD", raising=False)


def test_merge_cli_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_merge(instructions: Path, **kwargs: object) -> None:
        captured["instructions"] = instructions
        captured.update(kwargs)

    monkeypatch.setattr(cli_module, "merge_sources", fake_merge)

    cli_module.main(["merge", "data/instructions.json"])

    assert captured["instructions"] == Path("data/instructions.json")
    assert captured["output_file"] is None
    assert captured["config"] == MergeConfig()


def test_merge_cli_flags_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_merge(instructions: Path, **kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(cli_module, "merge_sources", fake_merge)
    monkeypatch.setenv("SOURCEMERGE_AMBIGUITY_THRESHOLD", "4")

    cli_module.main(
        [
            "merge",
            "instructions.json",
            "--output",
            "out/merged.csv",
            "--generate-reconciliation",
            "--ambiguity-threshold",
            "2",
            "--log-level",
            "debug",
        ]
    )

    config = captured["config"]
    assert isinstance(config, MergeConfig)
    assert config.generate_reconciliation
    assert config.ambiguity_threshold == 2
    assert captured["output_file"] == Path("out/merged.csv")


def _raiser(exc: Exception) -> Callable[..., None]:
    def fake_merge(*_: object, **__: object) -> None:
        raise exc

    return fake_merge


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (ReconciliationPendingError([Path("reconciliation/wikidata.csv")]), 3),
        (InvalidInstructionsError(Path("instructions.json"), "sources: too short"), 2),
        (MalformedSourceError(Path("members.csv"), "row 2 has no id"), 1),
    ],
)
def test_merge_cli_exit_codes(
    monkeypatch: pytest.MonkeyPatch, exc: Exception, code: int
) -> None:
    monkeypatch.setattr(cli_module, "merge_sources", _raiser(exc))

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["merge", "instructions.json"])

    assert excinfo.value.code == code


def test_merge_cli_invalid_threshold(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "merge_sources", _raiser(AssertionError("not reached")))

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["merge", "instructions.json", "--ambiguity-threshold", "0"])

    assert excinfo.value.code == 2


def test_merge_cli_requires_instructions() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["merge"])

    assert excinfo.value.code == 2
