"""Tests for the Docker CLI client."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kaictl.core.docker.client import DockerClient
from kaictl.core.docker.models import RunResult
from kaictl.core.docker.runner import CommandRunner
from kaictl.core.exceptions import CommandFailed, MissingPrerequisite, RegistryAuthRequired


def _result(exit_code: int = 0, stdout: str = "", stderr: str = "") -> RunResult:
    return RunResult(args=["docker"], exit_code=exit_code, stdout=stdout, stderr=stderr)


@pytest.fixture
def runner() -> MagicMock:
    mock = MagicMock(spec=CommandRunner)
    mock.which.return_value = "/usr/bin/docker"
    mock.run.return_value = _result()
    return mock


def _argv(runner: MagicMock) -> list[str]:
    return list(runner.run.call_args.args[0])


class TestAvailability:
    """Test daemon checks."""

    def test_not_installed(self, runner: MagicMock) -> None:
        runner.which.return_value = None
        client = DockerClient(runner)
        with pytest.raises(MissingPrerequisite, match="not installed"):
            client.ensure_available()

    def test_daemon_down(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(exit_code=1, stderr="Cannot connect")
        with pytest.raises(MissingPrerequisite, match="daemon is not running"):
            DockerClient(runner).ensure_available()

    def test_daemon_up(self, runner: MagicMock) -> None:
        client = DockerClient(runner)
        client.ensure_available()
        assert _argv(runner) == ["docker", "info"]


class TestContainers:
    """Test container queries and commands."""

    def test_list_containers_decodes_json_lines(self, runner: MagicMock) -> None:
        lines = [
            {"Names": "kai-backend", "ID": "abc", "Image": "cotandem-backend:latest", "State": "running", "Status": "Up", "Ports": "0.0.0.0:9900->9900/tcp"},
            {"Names": "kai-frontend", "ID": "def", "Image": "cotandem-frontend:latest", "State": "exited", "Status": "Exited (0)", "Ports": ""},
        ]
        runner.run.return_value = _result(stdout="\n".join(json.dumps(line) for line in lines))

        containers = DockerClient(runner).list_containers("kai-")

        assert [c.name for c in containers] == ["kai-backend", "kai-frontend"]
        assert containers[0].running is True
        assert containers[1].running is False
        assert _argv(runner) == ["docker", "ps", "-a", "--filter", "name=kai-", "--format", "{{json .}}"]

    def test_invalid_json_lines_are_skipped(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(stdout='not json\n{"Names": "kai-backend", "State": "running"}\n')
        containers = DockerClient(runner).list_containers()
        assert [c.name for c in containers] == ["kai-backend"]

    def test_get_container_exact_match(self, runner: MagicMock) -> None:
        """Substring matches from Docker's name filter are discarded."""
        runner.run.return_value = _result(stdout=json.dumps({"Names": "kai-backend-old", "State": "running"}))
        assert DockerClient(runner).get_container("kai-backend") is None
        assert "name=^kai-backend$" in _argv(runner)

    def test_run_container_argv(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(stdout="0123456789abcdef\n")
        container_id = DockerClient(runner).run_container(
            "kai-code-server",
            "kai-code-server:latest",
            network="kai-net",
            ports=[(8443, 8080)],
            env={"PASSWORD": "secret"},
            volumes=[("/var/run/docker.sock", "/var/run/docker.sock")],
            privileged=True,
            command=["--bind-addr", "0.0.0.0:8080"],
        )

        assert container_id == "0123456789abcdef"
        assert _argv(runner) == [
            "docker", "run", "-d", "--name", "kai-code-server",
            "--network", "kai-net",
            "--privileged",
            "-p", "8443:8080",
            "-e", "PASSWORD=secret",
            "-v", "/var/run/docker.sock:/var/run/docker.sock",
            "kai-code-server:latest",
            "--bind-addr", "0.0.0.0:8080",
        ]

    def test_failed_command_raises(self, runner: MagicMock) -> None:
        runner.run.side_effect = CommandFailed(_result(exit_code=1, stderr="No such container"))
        with pytest.raises(CommandFailed, match="No such container"):
            DockerClient(runner).stop_container("kai-backend")


class TestImages:
    """Test image queries and registry commands."""

    def test_image_exists_uses_inspect(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(exit_code=1)
        assert DockerClient(runner).image_exists("cotandem-backend:latest") is False
        assert _argv(runner) == ["docker", "image", "inspect", "cotandem-backend:latest"]

    def test_list_dangling_images(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(
            stdout=json.dumps({"Repository": "flexy-dev-sandbox", "Tag": "<none>", "ID": "123"})
        )
        images = DockerClient(runner).list_images("flexy-dev-sandbox", dangling=True)
        assert images[0].dangling is True
        assert "dangling=true" in _argv(runner)
        assert "reference=flexy-dev-sandbox" in _argv(runner)

    def test_pull_auth_error(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(exit_code=1, stderr="Error response from daemon: unauthorized")
        with pytest.raises(RegistryAuthRequired) as exc_info:
            DockerClient(runner).pull_image("ghcr.io/alice/app:latest")
        assert exc_info.value.registry == "ghcr.io"

    def test_pull_other_error(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(exit_code=1, stderr="manifest unknown")
        with pytest.raises(CommandFailed):
            DockerClient(runner).pull_image("ghcr.io/alice/app:latest")

    def test_remove_images_empty_is_noop(self, runner: MagicMock) -> None:
        DockerClient(runner).remove_images([])
        runner.run.assert_not_called()

    def test_build_no_cache(self, runner: MagicMock, tmp_path: Path) -> None:
        DockerClient(runner).build_image(tmp_path, "flexy-dev-sandbox:latest", no_cache=True)
        assert _argv(runner) == ["docker", "build", "--no-cache", "-t", "flexy-dev-sandbox:latest", str(tmp_path)]
        assert runner.run.call_args.kwargs["interactive"] is True


class TestNetworks:
    """Test network lookup."""

    def test_network_exists_exact(self, runner: MagicMock) -> None:
        runner.run.return_value = _result(stdout=json.dumps({"Name": "kai-net-2", "ID": "1", "Driver": "bridge"}))
        assert DockerClient(runner).network_exists("kai-net") is False

        runner.run.return_value = _result(stdout=json.dumps({"Name": "kai-net", "ID": "2", "Driver": "bridge"}))
        assert DockerClient(runner).network_exists("kai-net") is True
