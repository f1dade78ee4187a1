"""
Semantic test: command-line inspection of the status guard.

Invariants:
- "check" prints legal/illegal and exits 0/1 accordingly.
- "transitions" prints the full table for both flag values.
- A config file overrides the default transition policy.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from merchant_sync.runtime.entrypoint import main


def test_check_direct_completion(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["check", "ready", "completed", "--direct-completion"]) == 0
    assert capsys.readouterr().out.strip() == "legal"

    assert main(["check", "READY", "COMPLETED"]) == 1
    assert capsys.readouterr().out.strip() == "illegal"


def test_unknown_status_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["check", "shipped", "completed"])
    assert exc_info.value.code == 2


def test_transitions_table(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["transitions"]) == 0
    table = json.loads(capsys.readouterr().out)

    assert set(table) == {"standard", "direct_completion"}
    assert table["standard"]["READY"] == ["OUT_FOR_FULFILLMENT", "CANCELLED"]
    assert table["direct_completion"]["READY"] == ["OUT_FOR_FULFILLMENT", "COMPLETED", "CANCELLED"]
    assert table["standard"]["COMPLETED"] == []
    assert table["standard"]["PENDING"] == ["CONFIRMED", "CANCELLED"]


def test_config_overrides_policy(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cfg = tmp_path / "engine.json"
    cfg.write_text(
        json.dumps({"scope": "m-1", "transition_policy": {"cancellable_from": ["PENDING"]}}),
        encoding="utf-8",
    )

    assert main(["--config", str(cfg), "check", "preparing", "cancelled"]) == 1
    assert capsys.readouterr().out.strip() == "illegal"
    assert main(["--config", str(cfg), "check", "pending", "cancelled"]) == 0
