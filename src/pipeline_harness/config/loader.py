"""Harness config loading: built-in defaults, user YAML, environment."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pipeline_harness.config.models import HarnessConfig

DEFAULTS_DIR = Path(__file__).parent / "defaults"

# ${NAME} or ${NAME:-fallback}; a "}" inside the fallback is written "\}"
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<fallback>(?:[^}\\]|\\.)*))?}")


def _substitute(text: str) -> str:
    def _lookup(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in os.environ:
            return os.environ[name]
        fallback = match.group("fallback")
        if fallback is None:
            msg = f"Environment variable '{name}' is not set and no default provided"
            raise ValueError(msg)
        return fallback.replace("\\}", "}")

    return _ENV_REF.sub(_lookup, text)


def resolve_env_vars(data: Any) -> Any:
    """Expand environment references in every string of a parsed YAML tree."""
    match data:
        case str():
            return _substitute(data)
        case dict():
            return {key: resolve_env_vars(value) for key, value in data.items()}
        case list():
            return [resolve_env_vars(item) for item in data]
        case _:
            return data


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Overlay *overrides* on *base*; nested mappings merge, everything else replaces."""
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Parse a YAML mapping from *path* with environment references expanded."""
    source = Path(path)
    if not source.is_file():
        msg = f"Config file not found: {source}"
        raise FileNotFoundError(msg)
    try:
        data = yaml.safe_load(source.read_text())
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Failed to parse YAML in {source}{where}: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {source}, got {type(data).__name__}"
        raise TypeError(msg)
    return resolve_env_vars(data)  # type: ignore[no-any-return]


def builtin_defaults(name: str = "harness") -> dict[str, Any]:
    """The packaged defaults file ``defaults/<name>.yaml``."""
    return load_yaml(DEFAULTS_DIR / f"{name}.yaml")


def load_harness_config(
    path: str | Path,
    *,
    defaults: str = "harness",
) -> HarnessConfig:
    """Validate the user file at *path* layered over the built-in defaults.

    Raises:
        ValueError: the merged config does not validate, or the YAML is malformed.
    """
    merged = deep_merge(builtin_defaults(defaults), load_yaml(path))
    try:
        return HarnessConfig.model_validate(merged)
    except ValidationError as exc:
        msg = f"Invalid harness config ({path}):\n{exc}"
        raise ValueError(msg) from exc
