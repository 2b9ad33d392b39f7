"""dbbridge — Server configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. User config:   ~/.dbbridge/config.yaml
    3. An explicit ``--config`` file
    4. Environment variables prefixed with DBBRIDGE_

Per-connection backend settings are not part of ``Settings``; they arrive with
each ``connect-database`` call and are merged with the ``MCP_*`` environment
variables by :func:`apply_env_overrides`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=40100, ge=1024, le=65535)
    reload: bool = False
    log_level: Literal["debug", "info", "warning", "error"] = "info"


class GatewayConfig(BaseModel):
    """Limits for the connection gateway."""

    max_connections: Annotated[int, Field(ge=1, le=100)] = 20
    schema_sample_size: Annotated[int, Field(ge=1, le=1000)] = Field(
        default=10,
        description="Documents sampled per collection when inferring a MongoDB schema.",
    )


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DBBRIDGE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [Path.home() / ".dbbridge" / "config.yaml"]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level singleton, replaced by ``Settings.load()`` at server startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings


# ---------------------------------------------------------------------------
# Per-backend environment overrides
# ---------------------------------------------------------------------------

# (environment variable, config key, converter)
_ENV_OVERRIDES: dict[str, list[tuple[str, str, str]]] = {
    "sqlite": [
        ("MCP_SQLITE_FILENAME", "filename", "str"),
        ("MCP_SQLITE_CREATE_IF_NOT_EXISTS", "create_if_not_exists", "bool"),
    ],
    "postgres": [
        ("MCP_POSTGRES_HOST", "host", "str"),
        ("MCP_POSTGRES_PORT", "port", "int"),
        ("MCP_POSTGRES_DATABASE", "database", "str"),
        ("MCP_POSTGRES_USER", "user", "str"),
        ("MCP_POSTGRES_PASSWORD", "password", "str"),
        ("MCP_POSTGRES_SSL", "ssl", "bool"),
    ],
    "mssql": [
        ("MCP_MSSQL_SERVER", "server", "str"),
        ("MCP_MSSQL_PORT", "port", "int"),
        ("MCP_MSSQL_DATABASE", "database", "str"),
        ("MCP_MSSQL_USER", "user", "str"),
        ("MCP_MSSQL_PASSWORD", "password", "str"),
        ("MCP_MSSQL_ENCRYPT", "encrypt", "bool"),
        ("MCP_MSSQL_TRUST_SERVER_CERTIFICATE", "trust_server_certificate", "bool"),
    ],
    "mongodb": [
        ("MCP_MONGODB_URI", "uri", "str"),
        ("MCP_MONGODB_DATABASE", "database", "str"),
    ],
}


def _convert(raw: str, kind: str) -> Any:
    if kind == "bool":
        return raw == "true"
    if kind == "int":
        return int(raw)
    return raw


def apply_env_overrides(
    db_type: str,
    config: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a copy of *config* with any set ``MCP_*`` variables applied.

    Environment values win over the caller's values, including a caller's
    camelCase spelling of the same key.  Booleans are true only
    for the exact string ``"true"``; empty variables are ignored.  Unknown
    *db_type* values pass through unchanged.
    """
    env = os.environ if environ is None else environ
    merged = dict(config)
    for var, key, kind in _ENV_OVERRIDES.get(db_type, []):
        raw = env.get(var)
        if raw:
            merged.pop(to_camel(key), None)
            merged[key] = _convert(raw, kind)
    return merged
