from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml  # type: ignore

from .errors import ConfigError

# Looked up relative to the project root when --config is not given.
CONFIG_FILENAME = "conf/environments.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "environments": {},
    "default_apictl": "apictl",
    "export_dir": "api-exports",
    "logs_dir": "logs",
    "params_dir": "conf",
}


def load_config(path: str | Path | None) -> Dict[str, Any]:
    """Load configuration from YAML file, falling back to defaults."""
    if path is None:
        config = DEFAULT_CONFIG.copy()
        config["environments"] = {}
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file '{path}' must contain a mapping.")

    environments = data.get("environments") or {}
    if not isinstance(environments, dict):
        raise ConfigError("'environments' must map environment names to apictl commands.")

    return {
        "environments": {str(k): str(v) for k, v in environments.items()},
        # An explicit null disables the fallback so unmapped environments fail.
        "default_apictl": data["default_apictl"]
        if "default_apictl" in data
        else DEFAULT_CONFIG["default_apictl"],
        "export_dir": data.get("export_dir") or DEFAULT_CONFIG["export_dir"],
        "logs_dir": data.get("logs_dir") or DEFAULT_CONFIG["logs_dir"],
        "params_dir": data.get("params_dir") or DEFAULT_CONFIG["params_dir"],
    }


def resolve_config_path(project_root: str | Path, explicit: str | None) -> Path | None:
    """Return the config file to load: the explicit one, or the project default if present."""
    if explicit:
        return Path(explicit)
    candidate = Path(project_root) / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def resolve_path(project_root: str | Path, value: str | Path) -> Path:
    """Resolve a configured directory against the project root."""
    p = Path(value)
    return p if p.is_absolute() else Path(project_root) / p
