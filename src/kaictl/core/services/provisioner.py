"""
Network and volume provisioning.

Everything here is create-if-absent: running it twice creates nothing the
second time and raises nothing. There is no rollback; a partial run is
completed by running again.
"""

import logging
from pathlib import Path

from kaictl.core.config.env import read_env_file, write_env_file
from kaictl.core.config.models import KaiConfig
from kaictl.core.docker.client import DockerClient

from .models import ProvisionReport
from .specs import BACKEND_PORT

logger = logging.getLogger(__name__)


def backend_env(config: KaiConfig) -> dict[str, str]:
    """Variables written to the backend env file."""
    return {
        "PORT": str(BACKEND_PORT),
        "DOCKER_NETWORK": config.services.network,
        "IMAGE_NAME": f"{config.images.sandbox}:{config.images.tag}",
        "KAI_BASE_ROOT": str(config.directories.base_dir),
    }


class Provisioner:
    """
    Ensure the Docker network, host directories and backend env file exist.

    Args:
        docker: Docker client
        config: Invocation configuration
    """

    def __init__(self, docker: DockerClient, config: KaiConfig) -> None:
        self.docker = docker
        self.config = config

    def ensure_network(self) -> bool:
        """
        Create the shared network if it does not exist.

        Returns:
            True if the network was created, False if it already existed
        """
        name = self.config.services.network
        if self.docker.network_exists(name):
            logger.info(f"Docker network '{name}' already exists")
            return False
        self.docker.create_network(name)
        logger.info(f"Docker network '{name}' created")
        return True

    def ensure_directories(self) -> list[Path]:
        """
        Create the base directory and code-server persistence directories.

        Returns:
            Directories that did not exist before
        """
        dirs = self.config.directories
        wanted = [
            dirs.base_dir,
            dirs.code_server_dir / "config",
            dirs.code_server_dir / "local",
        ]
        created = []
        for path in wanted:
            if not path.is_dir():
                created.append(path)
            path.mkdir(parents=True, exist_ok=True)
        return created

    def write_env_file(self, force: bool = False) -> bool:
        """
        Write the backend env file.

        An existing file is left alone unless `force` is set, so local edits
        survive re-running setup.

        Returns:
            True if the file was written
        """
        path = self.config.directories.env_file_path
        if path.exists() and not force:
            existing = read_env_file(path)
            logger.info(f"Keeping existing {path} ({len(existing)} variables)")
            return False
        write_env_file(path, backend_env(self.config), header="Kai Backend Configuration")
        logger.info(f"Created {path}")
        return True

    def provision(self, env_file: bool = False, force_env: bool = False) -> ProvisionReport:
        """
        Run every provisioning step.

        Args:
            env_file: Also write the backend env file (setup does, start
                does not)
            force_env: Overwrite an existing env file

        Returns:
            ProvisionReport
        """
        report = ProvisionReport(network=self.config.services.network)
        report.directories_created = self.ensure_directories()
        report.network_created = self.ensure_network()
        if env_file:
            report.env_file = self.config.directories.env_file_path
            report.env_file_written = self.write_env_file(force=force_env)
        return report
