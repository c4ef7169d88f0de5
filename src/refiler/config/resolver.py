"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import RefilerConfig

ENV_PREFIX = "REFILER__"


def resolve_with_precedence(
    *,
    defaults: RefilerConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> RefilerConfig:
    """Merge configuration sources: defaults < file < environment < CLI."""
    merged = defaults.model_dump(mode="json")
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is not None:
            _apply(merged, source, source_name=name)

    try:
        return RefilerConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: RefilerConfig) -> Dict[str, str]:
    """Flatten the config into ``REFILER__SECTION__KEY`` environment variable mappings."""
    flat: Dict[str, str] = {}
    data = config.model_dump(mode="json")

    def _recurse(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _recurse(prefix + [str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            rendered = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            rendered = "null" if value is None else str(value)
        flat[env_key] = rendered

    for top_key, child_value in data.items():
        _recurse([str(top_key)], child_value)

    return flat


def _apply(
    target: dict[str, Any],
    overrides: Mapping[str, Any],
    *,
    source_name: str,
    prefix: tuple[str, ...] = (),
) -> None:
    """Write ``overrides`` into ``target``; keys may be nested or dotted."""
    if not isinstance(overrides, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    for key, value in overrides.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        path = (*prefix, *key.split("."))
        if isinstance(value, MappingABC):
            _apply(target, value, source_name=source_name, prefix=path)
            continue
        node = target
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                joined = ".".join(path)
                raise ConfigError(
                    f"{source_name.capitalize()} override for {joined} conflicts with existing value.",
                    key=joined,
                )
            node = child
        node[path[-1]] = deepcopy(value)


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
