"""Configuration loading from ``~/.criprof.yaml`` and environment overrides."""
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".criprof.yaml"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class CriprofConfig:
    cache_enabled: bool = True
    cache_ttl_seconds: float = 300
    network_timeout_seconds: float = 2.0
    fast: bool = False  # skip network probes
    parallel: bool = False
    deadline_seconds: Optional[float] = None
    exclude: List[str] = field(default_factory=list)
    markers: List[Dict[str, Any]] = field(default_factory=list)
    rules_dir: Optional[str] = None
    source: Optional[str] = None  # file the values came from, if any


# Environment variable -> (field, type)
ENV_OVERRIDES = {
    "CRIPROF_CACHE_TTL": ("cache_ttl_seconds", float),
    "CRIPROF_NETWORK_TIMEOUT": ("network_timeout_seconds", float),
    "CRIPROF_FAST": ("fast", bool),
    "CRIPROF_PARALLEL": ("parallel", bool),
    "CRIPROF_DEADLINE": ("deadline_seconds", float),
}


def default_config_path() -> Path:
    """``$HOME/.criprof.yaml``. Raises ConfigError if the home directory is unknown."""
    try:
        return Path.home() / CONFIG_FILENAME
    except (RuntimeError, KeyError) as e:
        raise ConfigError(f"cannot resolve home directory: {e}") from e


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _coerce(name: str, kind: type, raw: Any) -> Any:
    if kind is bool:
        return _parse_bool(name, raw)
    try:
        value = kind(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def _apply_file_values(config: CriprofConfig, data: Mapping[str, Any], path: Path) -> None:
    known = {f.name for f in fields(CriprofConfig)} - {"source"}
    for key, raw in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key '{key}' in {path}")
            continue
        if key in ("cache_enabled", "fast", "parallel"):
            setattr(config, key, _parse_bool(key, raw))
        elif key in ("cache_ttl_seconds", "network_timeout_seconds"):
            setattr(config, key, _coerce(key, float, raw))
        elif key == "deadline_seconds":
            setattr(config, key, None if raw is None else _coerce(key, float, raw))
        elif key in ("exclude", "markers"):
            if not isinstance(raw, list):
                raise ConfigError(f"{key} must be a list in {path}")
            setattr(config, key, list(raw))
        elif key == "rules_dir":
            setattr(config, key, None if raw is None else str(raw))


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> CriprofConfig:
    """
    Load configuration.

    Args:
        path: Explicit config file; it must exist. Without one,
              ``$HOME/.criprof.yaml`` is read if present.
        env: Environment snapshot used for CRIPROF_* overrides

    Returns:
        CriprofConfig with file values, then environment overrides, applied
    """
    config = CriprofConfig()
    config_path = Path(path) if path else default_config_path()

    if config_path.is_file():
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        _apply_file_values(config, data, config_path)
        config.source = str(config_path)
        logger.info(f"Using config file: {config_path}")
    elif path:
        raise ConfigError(f"config file not found: {path}")

    for var, (name, kind) in ENV_OVERRIDES.items():
        if env and var in env:
            setattr(config, name, _coerce(var, kind, env[var]))
            logger.debug(f"{name} overridden by {var}")

    return config
