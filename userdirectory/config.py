"""Configuration management for the user directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_url

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

_ENV_KEYS = {
    "database_url": "USERDIRECTORY_DATABASE_URL",
    "host": "USERDIRECTORY_HOST",
    "port": "USERDIRECTORY_PORT",
    "log_level": "USERDIRECTORY_LOG_LEVEL",
    "echo_sql": "USERDIRECTORY_ECHO_SQL",
}


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def _parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service and its store."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"
    echo_sql: bool = False

    @staticmethod
    def from_dict(data: Mapping[str, object], base: Optional["Settings"] = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data layered over ``base``."""

        unknown = set(data.keys()) - set(_ENV_KEYS)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        current = base or Settings(database_url=resolve_database_url(None))
        values: Dict[str, object] = {}
        if data.get("database_url"):
            values["database_url"] = str(data["database_url"])
        if data.get("host"):
            values["host"] = str(data["host"]).strip()
        if data.get("port") is not None:
            values["port"] = _parse_port(data["port"])
        if data.get("log_level"):
            level = str(data["log_level"]).strip().upper()
            if level not in _LOG_LEVELS:
                raise ValueError(f"Invalid log level: {data['log_level']!r}")
            values["log_level"] = level
        if data.get("echo_sql") is not None:
            values["echo_sql"] = _parse_bool(data["echo_sql"])
        return replace(current, **values)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the optional YAML settings file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "settings.yaml").resolve(strict=False)


def _load_yaml(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, then the YAML file, then the environment."""

    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("USERDIRECTORY_CONFIG"))

    settings = Settings(database_url=resolve_database_url(None))
    if path.exists():
        settings = Settings.from_dict(_load_yaml(path), base=settings)

    overrides = {key: env[name] for key, name in _ENV_KEYS.items() if env.get(name)}
    if overrides:
        settings = Settings.from_dict(overrides, base=settings)
    return settings


__all__ = ["Settings", "load_settings", "resolve_config_path"]
