"""Tests for the service lifecycle controller and service specs."""

import pytest

from kaictl.core.docker.models import RunResult
from kaictl.core.exceptions import CommandFailed
from kaictl.core.services.lifecycle import ServiceController
from kaictl.core.services.models import ActionKind
from kaictl.core.services.specs import CONTAINER_NAMES, build_service_specs

IMAGES = {
    "backend": "cotandem-backend:latest",
    "frontend": "cotandem-frontend:latest",
    "sandbox": "flexy-dev-sandbox:latest",
    "code-server": "kai-code-server:latest",
}


@pytest.fixture
def specs(kai_config):
    return build_service_specs(kai_config, IMAGES, user_id="1000", group_id="1000")


class TestServiceSpecs:
    """Test the default service definitions."""

    def test_start_order(self, specs) -> None:
        assert [s.container_name for s in specs] == list(CONTAINER_NAMES)
        assert [s.name for s in specs] == ["backend", "code-server", "frontend"]

    def test_backend_env(self, specs, kai_config) -> None:
        backend = specs[0]
        assert backend.privileged is True
        assert backend.env == {
            "NODE_ENV": "production",
            "PORT": "9900",
            "DOCKER_NETWORK": "kai-net",
            "IMAGE_NAME": "flexy-dev-sandbox:latest",
            "KAI_BASE_ROOT": str(kai_config.directories.base_dir),
            "USER_ID": "1000",
            "GROUP_ID": "1000",
        }
        assert (backend.ports[0].host, backend.ports[0].container) == (9900, 9900)
        assert any(v.container == "/var/run/docker.sock" for v in backend.volumes)

    def test_code_server(self, specs, kai_config) -> None:
        code_server = specs[1]
        assert code_server.privileged is True
        assert code_server.env["PASSWORD"] == "kai-dev"
        assert code_server.command == ["--bind-addr", "0.0.0.0:8080"]
        assert (code_server.ports[0].host, code_server.ports[0].container) == (8443, 8080)
        mounts = {v.container: v.host for v in code_server.volumes}
        assert mounts["/home/coder/.config"] == str(
            kai_config.directories.base_dir / ".kai" / "code-server" / "config"
        )

    def test_frontend_proxy_mode(self, specs) -> None:
        frontend = specs[2]
        assert frontend.privileged is False
        assert frontend.env == {"API_BASE_URL": ""}
        assert (frontend.ports[0].host, frontend.ports[0].container) == (9901, 80)

    def test_password_override(self, kai_config) -> None:
        config = kai_config.with_overrides(services={"code_server_password": "s3cret"})
        specs = build_service_specs(config, IMAGES, user_id="1", group_id="1")
        assert specs[1].env["PASSWORD"] == "s3cret"


class TestStart:
    """Test ServiceController.start()."""

    def test_fresh_start(self, fake_docker, specs) -> None:
        report = ServiceController(fake_docker).start(specs)

        assert [a.kind for a in report.actions] == [ActionKind.STARTED] * 3
        assert fake_docker.running_names() == sorted(CONTAINER_NAMES)

    def test_start_twice_leaves_one_container_each(self, fake_docker, specs) -> None:
        """Running containers are stopped, removed and recreated."""
        controller = ServiceController(fake_docker)
        controller.start(specs)
        report = controller.start(specs)

        assert fake_docker.running_names() == sorted(CONTAINER_NAMES)
        assert len(fake_docker.containers) == 3
        kinds = [a.kind for a in report.actions if a.service == "backend"]
        assert kinds == [ActionKind.STOPPED, ActionKind.REMOVED, ActionKind.STARTED]

    def test_stopped_container_is_removed_not_stopped(self, fake_docker, specs) -> None:
        controller = ServiceController(fake_docker)
        controller.start(specs)
        controller.stop()
        fake_docker.calls.clear()

        controller.start(specs)

        assert ("stop", "kai-backend") not in fake_docker.calls
        assert ("rm", "kai-backend") in fake_docker.calls

    def test_start_is_fail_fast(self, make_docker, specs) -> None:
        """A missing image aborts the run at the failing service."""
        docker = make_docker(images={"cotandem-backend:latest"})
        with pytest.raises(CommandFailed):
            ServiceController(docker).start(specs)
        assert list(docker.containers) == ["kai-backend"]

    def test_on_action_callback(self, fake_docker, specs) -> None:
        seen = []
        ServiceController(fake_docker, on_action=seen.append).start(specs)
        assert [a.container for a in seen] == list(CONTAINER_NAMES)


class TestStop:
    """Test ServiceController.stop()."""

    def test_stop_twice(self, fake_docker, specs) -> None:
        """The second stop changes nothing and reports zero actions."""
        controller = ServiceController(fake_docker)
        controller.start(specs)

        first = controller.stop()
        state_after_first = dict(fake_docker.containers)
        second = controller.stop()

        assert len(first.changed) == 3
        assert second.changed == []
        assert all(a.kind == ActionKind.ALREADY_STOPPED for a in second.actions)
        assert fake_docker.containers == state_after_first
        assert fake_docker.running_names() == []

    def test_stop_nothing_running(self, fake_docker) -> None:
        report = ServiceController(fake_docker).stop()
        assert report.ok is True
        assert report.changed == []

    def test_stop_isolates_failures(self, fake_docker, specs) -> None:
        controller = ServiceController(fake_docker)
        controller.start(specs)

        original_stop = fake_docker.stop_container

        def flaky_stop(name: str) -> None:
            if name == "kai-backend":
                raise CommandFailed(
                    RunResult(args=["docker", "stop", name], exit_code=1, stderr="daemon error")
                )
            original_stop(name)

        fake_docker.stop_container = flaky_stop  # type: ignore[method-assign]
        report = controller.stop()

        assert [a.kind for a in report.actions] == [
            ActionKind.FAILED,
            ActionKind.STOPPED,
            ActionKind.STOPPED,
        ]
        assert report.ok is False
        assert fake_docker.running_names() == ["kai-backend"]

    def test_stop_isolates_lookup_failures(self, fake_docker, specs) -> None:
        """A failed container lookup only affects that service."""
        controller = ServiceController(fake_docker)
        controller.start(specs)

        original_get = fake_docker.get_container

        def flaky_get(name: str):
            if name == "kai-code-server":
                raise CommandFailed(
                    RunResult(args=["docker", "ps"], exit_code=1, stderr="daemon error")
                )
            return original_get(name)

        fake_docker.get_container = flaky_get  # type: ignore[method-assign]
        report = controller.stop()

        assert [a.kind for a in report.actions] == [
            ActionKind.STOPPED,
            ActionKind.FAILED,
            ActionKind.STOPPED,
        ]
        assert fake_docker.running_names() == ["kai-code-server"]


class TestStatus:
    """Test ServiceController.status()."""

    def test_status_sorted_and_filtered(self, fake_docker, specs) -> None:
        fake_docker.images.add("postgres:16")
        fake_docker.run_container("db", "postgres:16")
        controller = ServiceController(fake_docker)
        controller.start(specs)

        assert [c.name for c in controller.status()] == sorted(CONTAINER_NAMES)
        assert len(controller.running()) == 3
