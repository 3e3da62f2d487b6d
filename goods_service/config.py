"""Service configuration read from the environment and a dotenv file."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

from dotenv import dotenv_values

PASSWORD = "password"
_CREDENTIAL_VARIABLE = "DB_PASSWORD"


def _setting(variable: str, default: str) -> str:
    return field(default=default, metadata={"env": variable})


@dataclass(frozen=True)
class Config:
    """Connection settings for the HTTP server and its backing services."""

    http_port: str = _setting("HTTP_PORT", "8080")

    db_host: str = _setting("DB_HOST", "postgres")
    db_port: str = _setting("DB_PORT", "5432")
    db_user: str = _setting("DB_USER", "user")
    db_password: str = _setting(_CREDENTIAL_VARIABLE, PASSWORD)
    db_name: str = _setting("DB_NAME", "goods")

    redis_host: str = _setting("REDIS_HOST", "redis")
    redis_port: str = _setting("REDIS_PORT", "6379")

    ch_host: str = _setting("CLICKHOUSE_HOST", "clickhouse")
    ch_port: str = _setting("CLICKHOUSE_PORT", "9000")

    nats_url: str = _setting("NATS_URL", "nats://nats:4222")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        """Build a config from a mapping of variables; empty values fall back to defaults."""
        source = os.environ if environ is None else environ
        values = {}
        for setting in fields(cls):
            value = source.get(setting.metadata["env"], "")
            if value:
                values[setting.name] = value
        return cls(**values)


def load_config(env_file: str | os.PathLike = ".env") -> Config:
    """Load the dotenv file, then the process environment, which takes precedence."""
    path = Path(env_file)
    if not path.is_file():
        raise FileNotFoundError(f"error loading {env_file} file")
    merged = {key: value for key, value in dotenv_values(path).items() if value is not None}
    merged.update(os.environ)
    return Config.from_env(merged)