"""Unit tests — CLI server commands."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from dbbridge.cli.commands.server import app

runner = CliRunner()


@pytest.mark.unit
class TestServerStart:
    def test_start_invokes_uvicorn(self) -> None:
        mock_settings = MagicMock()
        mock_settings.server.host = "127.0.0.1"
        mock_settings.server.port = 40100

        with patch("dbbridge.config.Settings.load", return_value=mock_settings), \
             patch("dbbridge.api.server.create_app", return_value=MagicMock()), \
             patch("dbbridge.cli.commands.server.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["start", "--host", "0.0.0.0", "--port", "40101"])

        assert result.exit_code == 0
        call_kwargs = mock_uvicorn.call_args[1]
        assert call_kwargs["host"] == "0.0.0.0"
        assert call_kwargs["port"] == 40101

    def test_start_keeps_configured_port(self) -> None:
        mock_settings = MagicMock()
        mock_settings.server.host = "127.0.0.1"
        mock_settings.server.port = 40555

        with patch("dbbridge.config.Settings.load", return_value=mock_settings), \
             patch("dbbridge.api.server.create_app", return_value=MagicMock()), \
             patch("dbbridge.cli.commands.server.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["start", "--log-level", "debug"])

        assert result.exit_code == 0
        call_kwargs = mock_uvicorn.call_args[1]
        assert call_kwargs["port"] == 40555
        assert call_kwargs["log_level"] == "debug"


@pytest.mark.unit
class TestServerStatus:
    def test_status_prints_health(self) -> None:
        response = MagicMock()
        response.json.return_value = {"status": "ok", "connections": 2}

        with patch("httpx.get", return_value=response):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "connections" in result.output

    def test_status_unreachable(self) -> None:
        with patch("httpx.get", side_effect=httpx.ConnectError("refused")):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "unreachable" in result.output
