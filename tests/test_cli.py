"""Tests for CLI module."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from click.testing import CliRunner

from pairline import __version__
from pairline.cli import main


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("port: 5123\n")
    return path


class TestCLIHelp:
    """Test CLI help output."""

    def test_cli_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "pairing codes" in result.output
        assert "serve" in result.output
        assert "status" in result.output

    def test_version(self, runner, config_file):
        result = runner.invoke(main, ["-c", str(config_file), "version"])

        assert result.exit_code == 0
        assert f"pairline version {__version__}" in result.output


class TestServeCommand:
    """Test the serve command."""

    def test_serve_runs_daemon(self, runner, config_file):
        with patch("pairline.daemon.PairingDaemon") as mock_daemon_class:
            mock_daemon = mock_daemon_class.return_value
            mock_daemon.start = AsyncMock()
            mock_daemon.run_forever = AsyncMock()
            mock_daemon.stop = AsyncMock()

            result = runner.invoke(main, ["-c", str(config_file), "serve", "-p", "6001"])

        assert result.exit_code == 0
        config = mock_daemon_class.call_args.kwargs["config"]
        assert config.port == 6001
        mock_daemon.run_forever.assert_awaited_once()
        assert "http://0.0.0.0:6001" in result.output

    def test_serve_startup_error_exits_nonzero(self, runner, config_file):
        from pairline.daemon import StartupError

        with patch("pairline.daemon.PairingDaemon") as mock_daemon_class:
            mock_daemon = mock_daemon_class.return_value
            mock_daemon.start = AsyncMock(side_effect=StartupError("port in use"))
            mock_daemon.stop = AsyncMock()

            result = runner.invoke(main, ["-c", str(config_file), "serve"])

        assert result.exit_code == 1
        assert "port in use" in result.output

    def test_serve_keyboard_interrupt(self, runner, config_file):
        with patch("pairline.daemon.PairingDaemon") as mock_daemon_class:
            mock_daemon = mock_daemon_class.return_value
            mock_daemon.start = AsyncMock()
            mock_daemon.run_forever = AsyncMock(side_effect=KeyboardInterrupt)
            mock_daemon.stop = AsyncMock()

            result = runner.invoke(main, ["-c", str(config_file), "serve"])

        assert result.exit_code == 0
        assert "Shutting down" in result.output


class TestStatusCommand:
    """Test the status command."""

    def test_status_unreachable(self, runner, config_file):
        refused = aiohttp.ClientConnectionError("refused")
        with patch("aiohttp.ClientSession.get", side_effect=refused):
            result = runner.invoke(main, ["-c", str(config_file), "status"])

        assert result.exit_code == 1
        assert "Service not reachable at http://127.0.0.1:5123/status" in result.output

    def test_status_prints_report(self, runner, config_file):
        response = AsyncMock()
        response.raise_for_status = lambda: None
        response.json = AsyncMock(
            return_value={
                "connectionState": "online",
                "hasQR": False,
                "liveSessionCount": 3,
                "account": "254700000000@s.whatsapp.net",
            }
        )
        get_context = AsyncMock()
        get_context.__aenter__.return_value = response

        with patch("aiohttp.ClientSession.get", return_value=get_context):
            result = runner.invoke(main, ["-c", str(config_file), "status"])

        assert result.exit_code == 0
        assert "Link state:    online" in result.output
        assert "QR available:  no" in result.output
        assert "Live codes:    3" in result.output
        assert "254700000000@s.whatsapp.net" in result.output
