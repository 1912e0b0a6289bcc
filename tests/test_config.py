"""Tests for CRM configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from mobcrm.config import (
    DEFAULT_PORT,
    ConfigError,
    CrmConfig,
    DatabaseConfig,
    LoggingConfig,
    load_config,
    resolve_env_vars,
)

pytestmark = pytest.mark.unit

FULL_TOML = """\
[crm]
name = "personal-crm"
port = 41000
default_user_id = "owner"

[crm.db]
name = "crm_db"
schema = "crm"

[crm.logging]
level = "debug"
format = "JSON"
log_file = "/var/log/crm/mobcrm.log"

[modules.contacts]
duplicate_limit = 50
"""

MINIMAL_TOML = """\
[crm]
name = "crm"
"""


def _write_toml(tmp_path: Path, content: str) -> Path:
    (tmp_path / "crm.toml").write_text(content)
    return tmp_path


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


def test_load_full_config(tmp_path: Path):
    cfg = load_config(_write_toml(tmp_path, FULL_TOML))

    assert isinstance(cfg, CrmConfig)
    assert cfg.name == "personal-crm"
    assert cfg.port == 41000
    assert cfg.default_user_id == "owner"
    assert cfg.db == DatabaseConfig(name="crm_db", schema="crm")
    assert cfg.logging == LoggingConfig(
        level="DEBUG", format="json", log_file="/var/log/crm/mobcrm.log"
    )
    assert cfg.modules == {"contacts": {"duplicate_limit": 50}}


def test_load_minimal_config_uses_defaults(tmp_path: Path):
    cfg = load_config(_write_toml(tmp_path, MINIMAL_TOML))

    assert cfg.port == DEFAULT_PORT
    assert cfg.default_user_id is None
    assert cfg.db == DatabaseConfig()
    assert cfg.logging == LoggingConfig()
    assert cfg.modules == {}


def test_env_vars_resolved(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CRM_OWNER", "owner-from-env")
    cfg = load_config(
        _write_toml(tmp_path, '[crm]\nname = "crm"\ndefault_user_id = "${CRM_OWNER}"\n')
    )
    assert cfg.default_user_id == "owner-from-env"


def test_resolve_env_vars_walks_nested_values(monkeypatch):
    monkeypatch.setenv("A", "1")
    assert resolve_env_vars({"x": ["${A}", 2, {"y": "pre-${A}"}], "z": None}) == {
        "x": ["1", 2, {"y": "pre-1"}],
        "z": None,
    }


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError, match="Config file not found"):
        load_config(tmp_path)


def test_invalid_toml(tmp_path: Path):
    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(_write_toml(tmp_path, "[crm\nname = "))


def test_missing_crm_section(tmp_path: Path):
    with pytest.raises(ConfigError, match=r"Missing \[crm\] section"):
        load_config(_write_toml(tmp_path, "[modules.contacts]\n"))


def test_missing_name(tmp_path: Path):
    with pytest.raises(ConfigError, match="crm.name"):
        load_config(_write_toml(tmp_path, "[crm]\nport = 8000\n"))


@pytest.mark.parametrize("port", ["0", "70000", '"http"'])
def test_invalid_port(tmp_path: Path, port: str):
    with pytest.raises(ConfigError, match="Invalid crm.port"):
        load_config(_write_toml(tmp_path, f'[crm]\nname = "crm"\nport = {port}\n'))


def test_blank_default_user(tmp_path: Path):
    with pytest.raises(ConfigError, match="default_user_id"):
        load_config(_write_toml(tmp_path, '[crm]\nname = "crm"\ndefault_user_id = "  "\n'))


def test_unresolved_env_var(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("CRM_MISSING_VAR", raising=False)
    with pytest.raises(ConfigError, match="CRM_MISSING_VAR"):
        load_config(_write_toml(tmp_path, '[crm]\nname = "${CRM_MISSING_VAR}"\n'))


def test_invalid_db_schema(tmp_path: Path):
    toml = '[crm]\nname = "crm"\n\n[crm.db]\nschema = "crm-prod"\n'
    with pytest.raises(ConfigError, match="Invalid crm.db.schema"):
        load_config(_write_toml(tmp_path, toml))


def test_invalid_log_format(tmp_path: Path):
    toml = '[crm]\nname = "crm"\n\n[crm.logging]\nformat = "xml"\n'
    with pytest.raises(ConfigError, match="Invalid crm.logging.format"):
        load_config(_write_toml(tmp_path, toml))
