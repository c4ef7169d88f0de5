"""CLI tests for configuration commands."""

import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from refiler.cli import cli
from refiler.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / ".refiler" / "config.yaml"


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "view"], env=env)

    assert result.exit_code == 0
    assert "execution:" in result.output
    assert _config_path(tmp_path).exists()


def test_config_view_respects_environment(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    env["REFILER__EXECUTION__MAX_DEPTH"] = "7"

    with_env = runner.invoke(cli, ["config", "view"], env=env)
    without_env = runner.invoke(cli, ["config", "view", "--no-env"], env=env)

    assert "max_depth: 7" in with_env.output
    assert "max_depth: 32" in without_env.output


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "execution.max_depth", "--value", "8"], env=env)

    assert result.exit_code == 0
    assert "Updated execution.max_depth" in result.output

    manager = ConfigManager(config_path=_config_path(tmp_path))
    config = manager.load(include_env=False)
    assert config.execution.max_depth == 8

    again = runner.invoke(cli, ["config", "set", "execution.max_depth", "--value", "8"], env=env)
    assert again.exit_code == 0
    assert "No changes applied" in again.output


def test_config_set_rejects_invalid_values(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    runner.invoke(cli, ["config", "view"], env=env)
    before = _config_path(tmp_path).read_text(encoding="utf-8")

    result = runner.invoke(cli, ["config", "set", "execution.max_depth", "--value", "0"], env=env)

    assert result.exit_code != 0
    assert _config_path(tmp_path).read_text(encoding="utf-8") == before


def test_config_set_rejects_unknown_keys(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli, ["config", "set", "execution.parallelism", "--value", "4"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code != 0
