"""
Tests for the command-line interface.
"""

import logging

import pytest
import yaml
from click.testing import CliRunner

from cosmos_quickstart import __version__
from cosmos_quickstart import cli as cli_module
from cosmos_quickstart.cli import cli
from cosmos_quickstart.store import StoreErrorKind, StoreServiceError

ENV_VARS = [
    "COSMOS_DB_ENDPOINT_URI",
    "COSMOS_ACCOUNT_PRIMARY_KEY",
    "COSMOS_QUICKSTART_BACKEND",
    "COSMOS_QUICKSTART_DATABASE",
    "COSMOS_QUICKSTART_CONTAINER",
    "COSMOS_QUICKSTART_LOG_LEVEL",
    "COSMOS_QUICKSTART_LOG_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


class TestRun:
    """Test the run command."""

    def test_run_memory_backend(self, runner):
        result = runner.invoke(cli, ["run", "--backend", "memory", "--log-level", "WARNING"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("Beginning operations...")
        assert "Created Database: FamilyDatabase" in result.output
        assert "Updated Family [Wakefield,Wakefield.7]." in result.output
        assert "Deleted Database: FamilyDatabase" in result.output
        assert result.output.rstrip().endswith("End of demo.")

    def test_runs_scenario_without_subcommand(self, runner):
        result = runner.invoke(cli, [])

        assert result.exit_code == 0, result.output
        assert "Deleted Database: FamilyDatabase" in result.output

    def test_store_error_exits_nonzero(self, runner, monkeypatch):
        async def failing_run_demo(settings):
            raise StoreServiceError.of(StoreErrorKind.SERVICE, "Request rate is large")

        monkeypatch.setattr(cli_module, "run_demo", failing_run_demo)

        result = runner.invoke(cli, ["run", "--backend", "memory"])

        assert result.exit_code == 1
        assert result.output.count("500 error occurred: Request rate is large") == 1
        assert "End of demo." in result.output

    def test_unexpected_error_exits_nonzero(self, runner, monkeypatch):
        async def failing_run_demo(settings):
            raise RuntimeError("boom")

        monkeypatch.setattr(cli_module, "run_demo", failing_run_demo)

        result = runner.invoke(cli, ["run", "--backend", "memory"])

        assert result.exit_code == 1
        assert result.output.count("cosmos_quickstart.cli: Error: boom") == 1
        assert "Traceback" in result.output

    def test_azure_backend_without_endpoint(self, runner):
        result = runner.invoke(cli, ["run", "--backend", "azure"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_malformed_config_file(self, runner, tmp_path):
        config_file = tmp_path / "quickstart.yaml"
        config_file.write_text("cosmos: [backend: memory\n")

        result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_optimistic_concurrency_flag(self, runner, monkeypatch):
        captured = {}

        async def recording_run_demo(settings):
            captured["settings"] = settings

        monkeypatch.setattr(cli_module, "run_demo", recording_run_demo)

        result = runner.invoke(cli, ["run", "--backend", "memory", "--optimistic-concurrency"])

        assert result.exit_code == 0, result.output
        assert captured["settings"].cosmos.optimistic_concurrency is True


class TestConfigCommand:
    """Test the config command."""

    def test_shows_redacted_config(self, runner, monkeypatch):
        monkeypatch.setenv("COSMOS_DB_ENDPOINT_URI", "https://quickstart.documents.azure.com:443/")
        monkeypatch.setenv("COSMOS_ACCOUNT_PRIMARY_KEY", "super-secret-key")

        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0, result.output
        assert "super-secret-key" not in result.output
        shown = yaml.safe_load(result.output)
        assert shown["cosmos"]["backend"] == "azure"
        assert shown["cosmos"]["key"] == "***REDACTED***"

    def test_reads_config_file(self, runner, tmp_path):
        config_file = tmp_path / "quickstart.yaml"
        config_file.write_text(yaml.safe_dump({"cosmos": {"container_id": "Families"}}))

        result = runner.invoke(cli, ["config", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output)["cosmos"]["container_id"] == "Families"


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
