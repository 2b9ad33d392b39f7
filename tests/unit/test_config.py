"""Unit tests — Settings.load, get_settings, override_settings, env overrides."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from dbbridge.config import Settings, apply_env_overrides, get_settings, override_settings


@pytest.mark.unit
class TestSettingsLoad:
    def test_load_defaults_when_no_files(self) -> None:
        with patch.object(Path, "exists", return_value=False):
            settings = Settings.load()
        assert settings.server.port == 40100
        assert settings.server.host == "127.0.0.1"
        assert settings.gateway.max_connections == 20

    def test_load_from_custom_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("server:\n  port: 9999\ngateway:\n  schema_sample_size: 50\n")

        settings = Settings.load(config_file=config_file)
        assert settings.server.port == 9999
        assert settings.gateway.schema_sample_size == 50

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DBBRIDGE_SERVER__PORT", "41000")
        with patch.object(Path, "exists", return_value=False):
            settings = Settings.load()
        assert settings.server.port == 41000

    def test_override_settings(self) -> None:
        custom = Settings(server={"port": 45000})
        override_settings(custom)
        assert get_settings() is custom


@pytest.mark.unit
class TestEnvOverrides:
    def test_env_wins_over_caller(self) -> None:
        merged = apply_env_overrides(
            "postgres",
            {"host": "caller", "database": "app"},
            {"MCP_POSTGRES_HOST": "envhost", "MCP_POSTGRES_PORT": "6543"},
        )
        assert merged == {"host": "envhost", "database": "app", "port": 6543}

    def test_camel_case_caller_key_replaced(self) -> None:
        merged = apply_env_overrides(
            "sqlite",
            {"filename": "a.db", "createIfNotExists": False},
            {"MCP_SQLITE_CREATE_IF_NOT_EXISTS": "true"},
        )
        assert merged == {"filename": "a.db", "create_if_not_exists": True}

    def test_boolean_only_true_for_exact_string(self) -> None:
        merged = apply_env_overrides("mssql", {}, {"MCP_MSSQL_ENCRYPT": "TRUE"})
        assert merged == {"encrypt": False}

    def test_empty_values_ignored(self) -> None:
        merged = apply_env_overrides("mongodb", {"uri": "mongodb://a"}, {"MCP_MONGODB_URI": ""})
        assert merged == {"uri": "mongodb://a"}

    def test_unknown_type_passes_through(self) -> None:
        assert apply_env_overrides("oracle", {"x": 1}, {"MCP_SQLITE_FILENAME": "b"}) == {"x": 1}

    def test_input_not_mutated(self) -> None:
        config = {"filename": "a.db"}
        apply_env_overrides("sqlite", config, {"MCP_SQLITE_FILENAME": "b.db"})
        assert config == {"filename": "a.db"}
