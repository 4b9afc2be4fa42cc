"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag / DATASERVICE_CONFIG_PATH
2. ./dataservice.yaml or ./dataservice.yml (working directory)
3. ~/.dataservice/config.yaml (user home)

Environment variables override YAML: DATASERVICE_SERVER_<KEY> for the
server section, DATASERVICE_ARTIFACT_ROOT for the artifact root.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")
_ENV_PREFIX = "DATASERVICE_"

CONFIG_PATH_ENV = "DATASERVICE_CONFIG_PATH"
DEFAULT_ARTIFACT_ROOT = "./data-sources"


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve ${VAR} references in a nested data structure."""
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class ServerConfig(BaseModel):
    """Configuration for the HTTP server process."""

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"


class DatabaseAlias(BaseModel):
    """Maps a short database abbreviation to the real database name."""

    model_config = ConfigDict(frozen=True)

    abbr: str
    name: str


class TenantContext(BaseModel):
    """A named logical environment with its own connection and database aliases."""

    model_config = ConfigDict(frozen=True)

    name: str
    connection_string_key: str | None = None
    databases: tuple[DatabaseAlias, ...] = ()

    def database_mappings(self) -> str:
        """Return the alias list as 'abbr=name' pairs joined by ';'."""
        return ";".join(f"{db.abbr}={db.name}" for db in self.databases)


class GatewayConfig(BaseModel):
    """Top-level configuration for the data gateway."""

    artifact_root: str = DEFAULT_ARTIFACT_ROOT
    server: ServerConfig = ServerConfig()
    connection_strings: dict[str, str] = Field(default_factory=dict)
    contexts: dict[str, TenantContext] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def normalize_contexts(cls, data: Any) -> Any:
        """Key contexts by lower-cased name; a context's name defaults to its key."""
        if not isinstance(data, dict):
            return data
        raw_contexts = data.get("contexts") or {}
        contexts: dict[str, Any] = {}
        for key, value in raw_contexts.items():
            if isinstance(value, dict):
                value = {"name": key, **value}
            contexts[str(key).lower()] = value
        return {**data, "contexts": contexts}

    @property
    def artifact_path(self) -> Path:
        return Path(self.artifact_root).expanduser().resolve()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "dataservice.yaml",
        Path.cwd() / "dataservice.yml",
        Path.home() / ".dataservice" / "config.yaml",
        Path.home() / ".dataservice" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce_env_value(value: str) -> int | bool | str:
    try:
        return int(value)
    except ValueError:
        if value.lower() in ("true", "false"):
            return value.lower() == "true"
        return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply DATASERVICE_* env var overrides to config data.

    ``DATASERVICE_ARTIFACT_ROOT`` replaces the artifact root and
    ``DATASERVICE_SERVER_<KEY>`` sets a key of the server section,
    e.g. ``DATASERVICE_SERVER_PORT=9000``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    artifact_root = os.environ.get(f"{_ENV_PREFIX}ARTIFACT_ROOT", "").strip()
    if artifact_root:
        data["artifact_root"] = artifact_root

    server_prefix = f"{_ENV_PREFIX}SERVER_"
    for key, value in os.environ.items():
        if not key.startswith(server_prefix):
            continue
        field_name = key[len(server_prefix):].lower()
        if field_name not in ServerConfig.model_fields:
            continue
        if not isinstance(data.get("server"), dict):
            data["server"] = {}
        data["server"][field_name] = _coerce_env_value(value)
    return data


def load_config(config_path: str | None = None) -> GatewayConfig:
    """Load gateway configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, uses
            DATASERVICE_CONFIG_PATH or searches standard locations.

    Returns:
        Parsed and validated GatewayConfig. Defaults when no file exists.

    Raises:
        FileNotFoundError: An explicit config path does not exist.
    """
    config_path = config_path or os.environ.get(CONFIG_PATH_ENV) or None
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found, using defaults")

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return GatewayConfig(**data)
