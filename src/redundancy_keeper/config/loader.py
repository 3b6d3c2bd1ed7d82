"""Helpers for reading configuration files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .schema import KeeperConfig, KeeperSettings


def _set_dotted(payload: Dict[str, Any], keys: List[str], value: Any) -> None:
    """Set ``a.b.c`` in a nested mapping, replacing non-mapping sections on the way."""
    section = payload
    for key in keys[:-1]:
        child = section.get(key)
        if not isinstance(child, dict):
            child = section[key] = {}
        section = child
    section[keys[-1]] = value


def apply_override(payload: Dict[str, Any], override: str) -> None:
    """Apply one ``section.key=value`` override; the value is JSON-decoded when it parses."""
    key, sep, raw_value = override.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"Override '{override}' must be in key=value format")
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError:
        value = raw_value
    _set_dotted(payload, key.strip().split("."), value)


def load_config(
    path: str | Path,
    overrides: Optional[Iterable[str]] = None,
    *,
    settings: Optional[KeeperSettings] = None,
) -> KeeperConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    for override in overrides or ():
        apply_override(payload, override)

    settings = settings or KeeperSettings()
    if settings.fleet_token:
        _set_dotted(payload, ["fleet", "token"], settings.fleet_token)
    if settings.log_level:
        _set_dotted(payload, ["logging", "level"], settings.log_level)

    return KeeperConfig.model_validate(payload)


def dump_config(config: KeeperConfig) -> str:
    serializable = json.loads(config.model_dump_json())
    if serializable.get("fleet", {}).get("token"):
        serializable["fleet"]["token"] = "***"
    return yaml.safe_dump(serializable, sort_keys=False)
