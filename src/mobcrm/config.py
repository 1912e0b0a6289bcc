"""CRM server configuration loading and validation.

Reads ``crm.toml`` from a config directory, parses all sections, and returns
a validated :class:`CrmConfig` dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "crm.toml"
DEFAULT_PORT = 40300

# Matches ${VAR_NAME}; alphanumeric and underscore names only
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_DB_SCHEMA_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConfigError(Exception):
    """Raised when CRM configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from [crm.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_file: str | None = None


@dataclass
class DatabaseConfig:
    """Database target from [crm.db] section.

    Connection credentials are not stored here; they come from
    ``DATABASE_URL`` / ``POSTGRES_*`` via :meth:`mobcrm.db.Database.from_env`.
    """

    name: str = "mobcrm"
    schema: str | None = None


@dataclass
class CrmConfig:
    """Parsed and validated CRM server configuration."""

    name: str
    port: int = DEFAULT_PORT
    default_user_id: str | None = None
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    modules: dict[str, dict] = field(default_factory=dict)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings.  Non-string leaf values (int, bool,
    float, None) are returned unchanged.

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


def _parse_db(crm_section: dict) -> DatabaseConfig:
    db_section = crm_section.get("db", {})
    if not isinstance(db_section, dict):
        raise ConfigError("crm.db must be a TOML table")

    db_name = str(db_section.get("name", "mobcrm")).strip()
    if not db_name:
        raise ConfigError("crm.db.name must be a non-empty string")

    db_schema_raw = db_section.get("schema")
    db_schema: str | None = None
    if db_schema_raw is not None:
        if not isinstance(db_schema_raw, str):
            raise ConfigError("crm.db.schema must be a string when set")
        normalized_schema = db_schema_raw.strip()
        if not normalized_schema:
            raise ConfigError("crm.db.schema must be a non-empty string when set")
        if _DB_SCHEMA_PATTERN.fullmatch(normalized_schema) is None:
            raise ConfigError(
                "Invalid crm.db.schema: "
                f"{db_schema_raw!r}. Expected a valid SQL identifier-style value."
            )
        db_schema = normalized_schema

    return DatabaseConfig(name=db_name, schema=db_schema)


def _parse_logging(crm_section: dict) -> LoggingConfig:
    logging_section = crm_section.get("logging", {})
    log_level = str(logging_section.get("level", "INFO")).upper()
    log_format = str(logging_section.get("format", "text")).lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"Invalid crm.logging.format: {log_format!r}. Expected 'text' or 'json'.")
    return LoggingConfig(
        level=log_level,
        format=log_format,
        log_file=logging_section.get("log_file"),
    )


def load_config(config_dir: Path) -> CrmConfig:
    """Load and validate a ``crm.toml`` from *config_dir*.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or lacks required fields.
    """
    toml_path = Path(config_dir) / CONFIG_FILENAME

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    crm_section = data.get("crm")
    if not isinstance(crm_section, dict):
        raise ConfigError("Missing [crm] section in config")

    name = crm_section.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Missing required field: crm.name")

    raw_port = crm_section.get("port", DEFAULT_PORT)
    try:
        port = int(raw_port)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid crm.port: {raw_port!r}. Must be an integer.") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid crm.port: {port!r}. Must be between 1 and 65535.")

    default_user_id = crm_section.get("default_user_id")
    if default_user_id is not None:
        if not isinstance(default_user_id, str) or not default_user_id.strip():
            raise ConfigError("crm.default_user_id must be a non-empty string when set")
        default_user_id = default_user_id.strip()

    modules: dict[str, dict] = {}
    for mod_name, mod_cfg in data.get("modules", {}).items():
        modules[mod_name] = dict(mod_cfg) if isinstance(mod_cfg, dict) else {}

    return CrmConfig(
        name=name.strip(),
        port=port,
        default_user_id=default_user_id,
        db=_parse_db(crm_section),
        logging=_parse_logging(crm_section),
        modules=modules,
    )
