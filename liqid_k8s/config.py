"""
Runtime settings.

Precedence: command line > environment > YAML config file > defaults.

Environment
-----------
LIQID_K8S_CONFIG        path of the YAML file (default ~/.config/liqid-k8s/config.yaml)
LIQID_K8S_PROXY_URL     kubectl proxy URL
LIQID_K8S_TIMEOUT       client timeout in seconds
LIQID_K8S_LOG_LEVEL     logging level name
LIQID_K8S_LOG_FILE      write logs to this file instead of stderr
LIQID_K8S_FABRIC_PORT   REST port of the Liqid Director
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from liqid_k8s.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "liqid-k8s" / "config.yaml"

_ENV_KEYS = {
    "proxy_url": "LIQID_K8S_PROXY_URL",
    "timeout_s": "LIQID_K8S_TIMEOUT",
    "log_level": "LIQID_K8S_LOG_LEVEL",
    "log_file": "LIQID_K8S_LOG_FILE",
    "fabric_port": "LIQID_K8S_FABRIC_PORT",
}


@dataclass(frozen=True)
class Settings:
    proxy_url: Optional[str] = None
    timeout_s: int = 300
    force: bool = False
    no_update: bool = False
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    fabric_port: int = 8080

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        return replace(self, **_coerce({k: v for k, v in overrides.items() if v is not None}))


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    result: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}'")
            continue
        if value is None:
            continue
        if key in ("timeout_s", "fabric_port"):
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Setting {key} must be an integer, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"Setting {key} must be positive, got {value}")
        elif key in ("force", "no_update"):
            value = str(value).lower() in ("1", "true", "yes", "on")
        elif key == "log_level":
            value = str(value).upper()
        result[key] = value
    return result


def _load_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    logger.info(f"Loaded settings from {path}")
    return data


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from the YAML file and the environment.

    Args:
        config_path: Explicit config file; an explicit path must exist
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid
    """
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    explicit = config_path or env.get("LIQID_K8S_CONFIG")
    path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH
    if path.exists():
        values.update(_load_file(path))
    elif explicit:
        raise ConfigurationError(f"Config file {path} does not exist")

    for key, env_key in _ENV_KEYS.items():
        if env.get(env_key):
            values[key] = env[env_key]

    return Settings(**_coerce(values))
