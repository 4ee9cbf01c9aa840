"""
Tests for the CLI entry point.
"""

from pathlib import Path
from unittest.mock import Mock, patch

import yaml
from typer.testing import CliRunner

from upload_relay.infrastructure.config.models import RelayConfig
from upload_relay.main import cli


class TestMainCLI:
    """CLI command tests."""

    def setup_method(self) -> None:
        self.runner = CliRunner()

    def test_cli_help_command(self) -> None:
        result = self.runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "start" in result.output
        assert "health-check" in result.output

    @patch('upload_relay.main.ConfigLoader')
    @patch('upload_relay.main.setup_logging')
    @patch('upload_relay.main.asyncio.run')
    def test_start_command_basic(self, mock_run: Mock, mock_setup_logging: Mock,
                                 mock_config_loader: Mock) -> None:
        mock_config_loader.return_value.load_config.return_value = RelayConfig()

        result = self.runner.invoke(cli, ["start"])

        assert result.exit_code == 0
        mock_config_loader.return_value.load_config.assert_called_once_with(None)
        mock_setup_logging.assert_called_once()
        mock_run.assert_called_once()
        mock_run.call_args[0][0].close()

    @patch('upload_relay.main.ConfigLoader')
    @patch('upload_relay.main.setup_logging')
    @patch('upload_relay.main.asyncio.run')
    def test_start_command_with_options(self, mock_run: Mock, mock_setup_logging: Mock,
                                        mock_config_loader: Mock) -> None:
        config = RelayConfig()
        mock_config_loader.return_value.load_config.return_value = config

        result = self.runner.invoke(cli, [
            "start", "--config", "relay.yaml", "--host", "127.0.0.1",
            "--port", "9000", "--debug",
        ])

        assert result.exit_code == 0
        mock_config_loader.return_value.load_config.assert_called_once_with("relay.yaml")
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000
        assert config.debug is True
        assert config.logging.level == "DEBUG"
        mock_setup_logging.assert_called_once_with(config.logging)
        mock_run.call_args[0][0].close()

    @patch('upload_relay.main.ConfigLoader')
    @patch('upload_relay.main.setup_logging')
    @patch('upload_relay.main.asyncio.run')
    def test_start_command_failure_exits_nonzero(self, mock_run: Mock, mock_setup_logging: Mock,
                                                 mock_config_loader: Mock) -> None:
        mock_config_loader.return_value.load_config.return_value = RelayConfig()

        def fail(coro):
            coro.close()
            raise OSError("address in use")

        mock_run.side_effect = fail

        result = self.runner.invoke(cli, ["start"])

        assert result.exit_code == 1

    def test_init_config_writes_defaults(self, tmp_path: Path) -> None:
        output = tmp_path / "relay.yaml"

        result = self.runner.invoke(cli, ["init-config", "--output", str(output)])

        assert result.exit_code == 0
        data = yaml.safe_load(output.read_text())
        assert data["server"]["port"] == 3000
        assert data["downstream"]["file_field"] == "data"

    def test_init_config_rejects_unknown_format(self, tmp_path: Path) -> None:
        result = self.runner.invoke(cli, [
            "init-config", "--output", str(tmp_path / "x"), "--format", "xml"])

        assert result.exit_code == 1

    def test_validate_config(self, tmp_path: Path) -> None:
        path = tmp_path / "relay.yaml"
        path.write_text(yaml.safe_dump({"session": {"inactivity_timeout": 42}}))

        with patch.dict('os.environ', {}, clear=True):
            result = self.runner.invoke(cli, ["validate-config", str(path)])

        assert result.exit_code == 0
        assert "is valid" in result.output
        assert "42" in result.output

    def test_validate_config_reports_errors(self, tmp_path: Path) -> None:
        path = tmp_path / "relay.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 70000}}))

        with patch.dict('os.environ', {}, clear=True):
            result = self.runner.invoke(cli, ["validate-config", str(path)])

        assert result.exit_code == 1

    def test_health_check_unreachable(self) -> None:
        result = self.runner.invoke(cli, ["health-check", "--port", "1", "--timeout", "1"])

        assert result.exit_code == 1
        assert "Health check failed" in result.output
