"""Rapport configuration loading and validation.

Reads ``rapport.toml``, resolves ``${VAR}`` environment references, and
returns a validated RapportConfig dataclass. Without a config file the
defaults apply and database connection parameters come from the environment
(``DATABASE_URL`` or ``POSTGRES_*``).
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rapport.db import DEFAULT_DB_NAME, Database, db_params_from_env

DEFAULT_CONFIG_FILE = Path("rapport.toml")
CONFIG_ENV_VAR = "RAPPORT_CONFIG"

# Pattern matching ${VAR_NAME}: supports alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigError(Exception):
    """Raised when rapport configuration is missing, malformed, or invalid."""


@dataclass
class DatabaseConfig:
    """Database connection settings from the [database] section."""

    name: str = DEFAULT_DB_NAME
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    sslmode: str | None = None
    min_pool_size: int = 1
    max_pool_size: int = 5
    command_timeout_s: float = 30.0

    def to_database(self) -> Database:
        """Build the Database handle these settings describe."""
        return Database(
            db_name=self.name,
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            ssl=self.sslmode,
            min_pool_size=self.min_pool_size,
            max_pool_size=self.max_pool_size,
            command_timeout=self.command_timeout_s,
        )


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_root: str | None = None


@dataclass
class ApiConfig:
    """HTTP server configuration from the [api] section."""

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class QueryConfig:
    """Defaults and caps for the read operations, from the [queries] section."""

    overdue_days: int = 30
    recent_limit: int = 10
    max_recent_limit: int = 200


@dataclass
class RapportConfig:
    """Parsed and validated rapport configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    queries: QueryConfig = field(default_factory=QueryConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaf values are returned
    unchanged.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a TOML table")
    return section


def _positive_int(section: dict[str, Any], key: str, default: int, path: str) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {path}.{key}: {raw!r}. Must be an integer.") from exc
    if value <= 0:
        raise ConfigError(f"Invalid {path}.{key}: {raw!r}. Must be a positive integer.")
    return value


def _parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse [database], layering explicit settings over environment defaults."""
    section = _section(data, "database")
    env = db_params_from_env()

    name = str(section.get("name") or env.get("database") or DEFAULT_DB_NAME).strip()
    if not name:
        raise ConfigError("database.name must be a non-empty string")

    min_pool_size = _positive_int(section, "min_pool_size", 1, "database")
    max_pool_size = _positive_int(section, "max_pool_size", 5, "database")
    if min_pool_size > max_pool_size:
        raise ConfigError(
            f"database.min_pool_size ({min_pool_size}) exceeds max_pool_size ({max_pool_size})"
        )

    sslmode = section.get("sslmode", env.get("ssl"))
    if sslmode is not None and not isinstance(sslmode, str):
        raise ConfigError("database.sslmode must be a string when set")

    return DatabaseConfig(
        name=name,
        host=str(section.get("host", env["host"])),
        port=_positive_int(section, "port", int(env["port"]), "database"),
        user=str(section.get("user", env["user"])),
        password=str(section.get("password", env["password"])),
        sslmode=sslmode or None,
        min_pool_size=min_pool_size,
        max_pool_size=max_pool_size,
        command_timeout_s=float(section.get("command_timeout_s", 30.0)),
    )


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging")
    level = str(section.get("level", "INFO")).upper()
    log_format = str(section.get("format", "text")).lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"Invalid logging.format: {log_format!r}. Expected 'text' or 'json'.")
    log_root = section.get("log_root")
    if log_root is not None and not isinstance(log_root, str):
        raise ConfigError("logging.log_root must be a string when set")
    return LoggingConfig(level=level, format=log_format, log_root=log_root)


def _parse_api(data: dict[str, Any]) -> ApiConfig:
    section = _section(data, "api")
    cors_origins = section.get("cors_origins", ["*"])
    if isinstance(cors_origins, str):
        cors_origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
    if not isinstance(cors_origins, list) or not all(isinstance(o, str) for o in cors_origins):
        raise ConfigError("api.cors_origins must be a list of strings")
    return ApiConfig(
        host=str(section.get("host", "127.0.0.1")),
        port=_positive_int(section, "port", 3000, "api"),
        cors_origins=cors_origins,
    )


def _parse_queries(data: dict[str, Any]) -> QueryConfig:
    section = _section(data, "queries")
    overdue_days = section.get("overdue_days", 30)
    if isinstance(overdue_days, bool) or not isinstance(overdue_days, int) or overdue_days < 0:
        raise ConfigError(
            f"Invalid queries.overdue_days: {overdue_days!r}. Must be a non-negative integer."
        )
    recent_limit = _positive_int(section, "recent_limit", 10, "queries")
    max_recent_limit = _positive_int(section, "max_recent_limit", 200, "queries")
    if recent_limit > max_recent_limit:
        raise ConfigError(
            f"queries.recent_limit ({recent_limit}) exceeds max_recent_limit ({max_recent_limit})"
        )
    return QueryConfig(
        overdue_days=overdue_days,
        recent_limit=recent_limit,
        max_recent_limit=max_recent_limit,
    )


def parse_config(data: dict[str, Any]) -> RapportConfig:
    """Validate an already-parsed TOML document into a RapportConfig."""
    data = resolve_env_vars(data)
    return RapportConfig(
        database=_parse_database(data),
        logging=_parse_logging(data),
        api=_parse_api(data),
        queries=_parse_queries(data),
    )


def load_config(path: Path | None = None) -> RapportConfig:
    """Load and validate rapport configuration.

    Parameters
    ----------
    path:
        Explicit config file. When omitted, ``$RAPPORT_CONFIG`` and then
        ``./rapport.toml`` are tried; if neither exists, defaults are used.

    Raises
    ------
    ConfigError
        If an explicit file is missing, contains invalid TOML, or holds
        invalid values.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path)
        elif DEFAULT_CONFIG_FILE.exists():
            path = DEFAULT_CONFIG_FILE
        else:
            return parse_config({})

    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    return parse_config(data)
