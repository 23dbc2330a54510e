"""
Unit tests for the clouddity command line interface.

The provider and the Docker manager factory are replaced with mocks, so the
commands run against an in-memory cluster.
"""

import json
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from clouddity_cli import cli as cli_module
from clouddity_cli.cli import cli
from clouddity_common.errors import ProviderError
from clouddity_controller.docker_manager import ContainerInfo


@pytest.fixture
def config_file(tmp_path, raw_config):
    path = tmp_path / "clouddity.json"
    path.write_text(json.dumps(raw_config))
    return str(path)


@pytest.fixture
def manager():
    mgr = AsyncMock()
    mgr.run_container = AsyncMock(return_value="0123456789abcdef")
    mgr.list_containers = AsyncMock(
        return_value=[
            ContainerInfo(
                container_id="c1" * 8,
                name="apache",
                image="registry.example.com/apache:2.4",
                status="running",
            ),
            ContainerInfo(container_id="c9", name="stray", image="x", status="exited"),
        ]
    )
    return mgr


@pytest.fixture
def runner(monkeypatch, mock_provider, manager):
    monkeypatch.setattr(cli_module, "get_provider", lambda config: mock_provider)
    monkeypatch.setattr(cli_module, "get_docker_factory", lambda: lambda c: manager)
    return CliRunner()


class TestInspectionCommands:
    """Test suite for the nodes and securitygroups commands."""

    def test_nodes_list(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "nodes", "list"])

        assert result.exit_code == 0, result.output
        assert "oa-1-computing" in result.output
        assert "oa-3-loadbalancer" in result.output
        assert "oa-9-unrelated" not in result.output

    def test_nodes_list_json(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "nodes", "list", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [n["name"] for n in data] == [
            "oa-3-loadbalancer",
            "oa-1-computing",
            "oa-2-computing",
        ]
        assert "auth" not in data[0]

    def test_nodes_list_empty(self, runner, config_file, mock_provider):
        mock_provider.list_active_nodes.return_value = []

        result = runner.invoke(cli, ["--config", config_file, "nodes", "list"])

        assert result.exit_code == 0
        assert "No nodes found." in result.output

    def test_securitygroups_list(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "securitygroups", "list"])

        assert result.exit_code == 0, result.output
        assert result.output.split() == ["oa-dockerd", "oa-http"]

    def test_config_from_environment(self, runner, config_file, monkeypatch):
        monkeypatch.setenv("CLOUDDITY_CONFIG", config_file)

        result = runner.invoke(cli, ["securitygroups", "list", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [{"name": "oa-dockerd"}, {"name": "oa-http"}]


class TestErrors:
    """Test suite for error reporting."""

    def test_missing_config_file(self, runner, tmp_path):
        missing = str(tmp_path / "missing.json")

        result = runner.invoke(cli, ["--config", missing, "nodes", "list"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output

    def test_invalid_config(self, runner, tmp_path, raw_config):
        del raw_config["cluster"]
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(raw_config))

        result = runner.invoke(cli, ["--config", str(path), "nodes", "list"])

        assert result.exit_code == 1
        assert "cluster" in result.output

    def test_provider_error(self, runner, config_file, mock_provider):
        mock_provider.list_active_nodes.side_effect = ProviderError("unauthorized")

        result = runner.invoke(cli, ["--config", config_file, "nodes", "list"])

        assert result.exit_code == 1
        assert "Error: unauthorized" in result.output

    def test_failed_operation_exits_nonzero(self, runner, config_file, manager):
        manager.pull_image.side_effect = RuntimeError("manifest unknown")

        result = runner.invoke(cli, ["--config", config_file, "images", "pull"])

        assert result.exit_code == 1
        assert "image haproxy on oa-3-loadbalancer" in result.output
        assert "✓" not in result.output
        assert manager.pull_image.await_count == 1


class TestWorkloadCommands:
    """Test suite for the images and containers commands."""

    def test_images_pull_with_filters(self, runner, config_file, manager):
        result = runner.invoke(
            cli,
            [
                "--config",
                config_file,
                "images",
                "pull",
                "--nodeid",
                "id-1",
                "--container",
                "consul",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "✓ Images pulled" in result.output
        manager.pull_image.assert_awaited_once()
        assert manager.pull_image.await_args.args[0].name == "consul"

    def test_containers_run(self, runner, config_file, manager):
        result = runner.invoke(
            cli, ["--config", config_file, "containers", "run", "--nodetype", "computing"]
        )

        assert result.exit_code == 0, result.output
        assert "✓ Containers running" in result.output
        assert manager.run_container.await_count == 4

    def test_containers_stop(self, runner, config_file, manager):
        result = runner.invoke(cli, ["--config", config_file, "containers", "stop"])

        assert result.exit_code == 0, result.output
        assert "✓ Containers stopped" in result.output
        # apache is declared on the two computing nodes only
        assert manager.stop_container.await_count == 2

    def test_containers_remove_by_id(self, runner, config_file, manager):
        result = runner.invoke(
            cli,
            [
                "--config",
                config_file,
                "containers",
                "remove",
                "--nodeid",
                "id-2",
                "--containerid",
                "c1" * 8,
            ],
        )

        assert result.exit_code == 0, result.output
        manager.remove_container.assert_awaited_once_with("c1" * 8, force=True)

    def test_containers_list_json(self, runner, config_file):
        result = runner.invoke(
            cli, ["--config", config_file, "containers", "list", "--json", "--nodeid", "id-1"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == [
            {
                "node": "oa-1-computing",
                "name": "apache",
                "id": "c1" * 8,
                "image": "registry.example.com/apache:2.4",
                "status": "running",
            }
        ]

    def test_containers_list_table(self, runner, config_file):
        result = runner.invoke(cli, ["--config", config_file, "containers", "list"])

        assert result.exit_code == 0, result.output
        assert "oa-2-computing" in result.output
        assert "stray" not in result.output


class TestLogLevel:
    """Test suite for log level selection."""

    def test_default(self, monkeypatch):
        monkeypatch.delenv("CLOUDDITY_LOG_LEVEL", raising=False)
        assert cli_module.get_log_level() == "INFO"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("CLOUDDITY_LOG_LEVEL", "debug")
        assert cli_module.get_log_level() == "DEBUG"

    def test_unknown_value(self, monkeypatch):
        monkeypatch.setenv("CLOUDDITY_LOG_LEVEL", "chatty")
        assert cli_module.get_log_level() == "INFO"
