"""Configuration management for Refiler."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import RefilerConfig
from .resolver import ENV_PREFIX, flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.refiler/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Refiler configuration file
    # Generated automatically; manage via `refiler config set KEY --value VALUE`.
    """
)


class ConfigManager:
    """Load and persist configuration data, applying precedence rules."""

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> RefilerConfig:
        """Load the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides with the highest precedence.
            include_env: Whether ``REFILER__SECTION__KEY`` variables apply.
            env_overrides: Variables to use instead of ``os.environ``.

        Raises:
            ConfigError: If the file cannot be parsed or a value is invalid.
        """
        self.ensure_exists()
        env_data = None
        if include_env:
            env_data = _env_overrides(os.environ if env_overrides is None else env_overrides)

        return resolve_with_precedence(
            defaults=RefilerConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_data,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, data: Mapping[str, Any]) -> None:
        """Persist raw configuration overrides to disk."""
        self._write_file(data)

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        path = self._config_path
        if not path.exists():
            self._write_file(RefilerConfig().model_dump(mode="json"))
        return path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    # Internal helpers -------------------------------------------------

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")

        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        serialized = yaml.safe_dump(dict(data), sort_keys=False)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self._config_path.write_text(
            _CONFIG_HEADER + f"# Last updated: {stamp}\n" + serialized, encoding="utf-8"
        )


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Map ``REFILER__WATCH__RECURSIVE=false`` style variables to dotted keys."""
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            overrides[".".join(segments)] = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            overrides[".".join(segments)] = raw_value
    return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "RefilerConfig",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
]
