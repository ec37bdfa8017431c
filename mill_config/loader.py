"""
Settings Loader (``mill_config.loader``).

Responsibility
--------------
Reads YAML settings files and parses them into a frozen ``MillSettings``.
An override file is merged over the shipped ``defaults.yaml`` section by
section.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from mill_config.schema import MillSettings
from mill_modules.inventory.config import InventoryConfig
from mill_modules.payroll.config import PayrollConfig

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_TOP_LEVEL_KEYS = frozenset({"database_url", "log_level", "inventory", "payroll"})
_SECTIONS: dict[str, type] = {
    "inventory": InventoryConfig,
    "payroll": PayrollConfig,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _check_keys(data: dict[str, Any], allowed: frozenset[str], where: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown {where} setting(s): {', '.join(unknown)}")


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Override top-level values; section mappings are merged key by key."""
    merged = dict(base)
    for key, value in override.items():
        if key in _SECTIONS and isinstance(value, dict):
            section = dict(merged.get(key) or {})
            section.update(value)
            merged[key] = section
        else:
            merged[key] = value
    return merged


def parse_settings(data: dict[str, Any]) -> MillSettings:
    """
    Build ``MillSettings`` from a parsed YAML mapping.

    Raises:
        ValueError: unknown keys, missing ``database_url``, or a value the
            section schema rejects.
    """
    _check_keys(data, _TOP_LEVEL_KEYS, "top-level")

    sections = {}
    for name, schema in _SECTIONS.items():
        raw = data.get(name) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{name} settings must be a mapping")
        _check_keys(raw, frozenset(f.name for f in fields(schema)), name)
        sections[name] = schema.from_dict(raw)

    return MillSettings(
        database_url=str(data.get("database_url") or ""),
        log_level=str(data.get("log_level", "INFO")).upper(),
        **sections,
    )


def load_settings(path: Path | None = None) -> MillSettings:
    """Defaults merged with the file at ``path`` (if any)."""
    data = load_yaml_file(DEFAULTS_PATH)
    if path is not None:
        data = merge_settings(data, load_yaml_file(path))
    return parse_settings(data)
