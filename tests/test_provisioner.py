"""Tests for network, directory and env file provisioning."""

from kaictl.core.config.env import read_env_file
from kaictl.core.services.provisioner import Provisioner, backend_env


class TestProvisioner:
    """Test Provisioner idempotency."""

    def test_first_run_creates_everything(self, fake_docker, kai_config) -> None:
        report = Provisioner(fake_docker, kai_config).provision(env_file=True)

        base = kai_config.directories.base_dir
        assert report.network == "kai-net"
        assert report.network_created is True
        assert base in report.directories_created
        assert (base / ".kai" / "code-server" / "config").is_dir()
        assert (base / ".kai" / "code-server" / "local").is_dir()
        assert report.env_file_written is True
        assert fake_docker.networks == {"kai-net"}

    def test_second_run_is_noop(self, fake_docker, kai_config) -> None:
        """Running twice raises nothing and creates no duplicate network."""
        provisioner = Provisioner(fake_docker, kai_config)
        provisioner.provision(env_file=True)
        report = provisioner.provision(env_file=True)

        assert report.network_created is False
        assert report.directories_created == []
        assert report.env_file_written is False
        assert [c for c in fake_docker.calls if c[0] == "network-create"] == [
            ("network-create", "kai-net")
        ]

    def test_existing_env_file_is_kept(self, fake_docker, kai_config) -> None:
        path = kai_config.directories.env_file_path
        path.parent.mkdir(parents=True)
        path.write_text("PORT=1234\n")

        written = Provisioner(fake_docker, kai_config).write_env_file()

        assert written is False
        assert path.read_text() == "PORT=1234\n"

    def test_force_overwrites_env_file(self, fake_docker, kai_config) -> None:
        path = kai_config.directories.env_file_path
        path.parent.mkdir(parents=True)
        path.write_text("PORT=1234\n")

        assert Provisioner(fake_docker, kai_config).write_env_file(force=True) is True
        assert read_env_file(path)["PORT"] == "9900"

    def test_env_file_contents(self, fake_docker, kai_config) -> None:
        Provisioner(fake_docker, kai_config).write_env_file()
        values = read_env_file(kai_config.directories.env_file_path)
        assert values == backend_env(kai_config)
        assert values["IMAGE_NAME"] == "flexy-dev-sandbox:latest"
        assert values["DOCKER_NETWORK"] == "kai-net"

    def test_start_provisioning_skips_env_file(self, fake_docker, kai_config) -> None:
        report = Provisioner(fake_docker, kai_config).provision()
        assert report.env_file is None
        assert not kai_config.directories.env_file_path.exists()
