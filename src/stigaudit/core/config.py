"""Layered configuration for STIG Audit.

Loads and merges configuration from:
1. Default settings (built-in)
2. Config file (~/.stig-audit/config.yaml, or $STIG_AUDIT_CONFIG)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

CONFIG_ENV = "STIG_AUDIT_CONFIG"

DEFAULT_CONFIG: dict = {
    "stig": {
        "source_directory": "C:\\STIG_Files",
        "last_scan_timestamp": None,
    },
    "checks": {
        "timeout_ms": 15000,
        "max_workers": 1,
    },
    "executor": {
        "type": "powershell",
        "powershell": {
            "executable": "powershell.exe",
            "arguments": ["-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command"],
        },
        "remote": {
            "endpoint": "http://localhost:5985",
            "token_env": "STIG_AGENT_TOKEN",
        },
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override)
    return Path.home() / ".stig-audit" / "config.yaml"


def load_config(config_path: Path) -> dict:
    """Load the stored configuration record. Missing or unreadable -> {}."""
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def save_config(config_path: Path, partial: dict) -> dict:
    """Merge ``partial`` onto the stored record and write it back."""
    stored = deep_merge(load_config(config_path), partial)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    content = yaml.dump(
        stored,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=120,
    )
    config_path.write_text(content, encoding="utf-8")
    return stored


def get_effective_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = config_path or default_config_path()
    stored = load_config(path)
    if stored:
        config = deep_merge(config, stored)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    config["_config_path"] = str(path)
    return config
