"""
Pytest configuration and shared fixtures.

Provides an in-memory fake Docker engine, an isolated KaiConfig rooted in a
temp directory, and environment isolation for the config loader.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from kaictl.core.config.models import KaiConfig
from kaictl.core.docker.client import DockerClient, registry_of
from kaictl.core.docker.models import ContainerInfo, ImageInfo, RunResult
from kaictl.core.docker.runner import CommandRunner
from kaictl.core.exceptions import CommandFailed, MissingPrerequisite, RegistryAuthRequired

# ==============================================================================
# Fake Docker engine
# ==============================================================================


def _failure(args: list[str], stderr: str) -> CommandFailed:
    return CommandFailed(RunResult(args=["docker", *args], exit_code=1, stderr=stderr))


class FakeDockerClient(DockerClient):
    """
    DockerClient backed by in-memory state instead of the docker CLI.

    Behaves like the real engine where it matters for orchestration:
    creating a container or network whose name is taken fails, pulling an
    image the registry does not have fails, and registries listed in
    `auth_required` reject pulls until `login()` is called.
    """

    def __init__(
        self,
        images: set[str] | None = None,
        remote: set[str] | None = None,
        auth_required: set[str] | None = None,
    ) -> None:
        super().__init__(runner=MagicMock(spec=CommandRunner))
        self.available = True
        self.images: set[str] = set(images or ())
        self.remote: set[str] = set(remote or ())
        self.auth_required: set[str] = set(auth_required or ())
        self.networks: set[str] = set()
        self.containers: dict[str, ContainerInfo] = {}
        self.run_specs: dict[str, dict] = {}
        self.calls: list[tuple[str, ...]] = []
        self._next_id = 0

    def login(self, registry: str) -> None:
        self.auth_required.discard(registry)

    def ensure_available(self) -> None:
        if not self.available:
            raise MissingPrerequisite("Docker daemon is not running", tool="docker")

    # Networks

    def network_exists(self, name: str) -> bool:
        return name in self.networks

    def create_network(self, name: str) -> None:
        self.calls.append(("network-create", name))
        if name in self.networks:
            raise _failure(["network", "create", name], f"network with name {name} already exists")
        self.networks.add(name)

    # Images

    def image_exists(self, reference: str) -> bool:
        return reference in self.images

    def pull_image(self, reference: str) -> None:
        self.calls.append(("pull", reference))
        registry = registry_of(reference)
        if registry in self.auth_required:
            raise RegistryAuthRequired(registry, reference=reference)
        if reference not in self.remote:
            raise _failure(["pull", reference], "manifest unknown")
        self.images.add(reference)

    def push_image(self, reference: str) -> None:
        self.calls.append(("push", reference))
        if reference not in self.images:
            raise _failure(["push", reference], "An image does not exist locally")
        self.remote.add(reference)

    def tag_image(self, source: str, target: str) -> None:
        self.calls.append(("tag", source, target))
        if source not in self.images:
            raise _failure(["tag", source, target], f"No such image: {source}")
        self.images.add(target)

    def build_image(self, context: Path, tag: str, no_cache: bool = False) -> None:
        self.calls.append(("build", str(context), tag))
        self.images.add(tag)

    def list_images(self, repository: str | None = None, dangling: bool = False) -> list[ImageInfo]:
        result = []
        for reference in sorted(self.images):
            repo, _, tag = reference.rpartition(":")
            if repository and repo != repository:
                continue
            info = ImageInfo(repository=repo, tag=tag, id=f"id-{reference}")
            if dangling and not info.dangling:
                continue
            result.append(info)
        return result

    def remove_images(self, image_ids) -> None:
        self.calls.append(("rmi", *image_ids))
        self.images = {ref for ref in self.images if f"id-{ref}" not in image_ids}

    # Containers

    def list_containers(
        self, name_filter: str | None = None, include_stopped: bool = True
    ) -> list[ContainerInfo]:
        result = []
        for container in self.containers.values():
            if name_filter and name_filter not in container.name:
                continue
            if not include_stopped and not container.running:
                continue
            result.append(container)
        return result

    def get_container(self, name: str) -> ContainerInfo | None:
        return self.containers.get(name)

    def stop_container(self, name: str) -> None:
        self.calls.append(("stop", name))
        container = self.containers[name]
        self.containers[name] = container.model_copy(update={"state": "exited", "status": "Exited (0)"})

    def remove_container(self, name: str) -> None:
        self.calls.append(("rm", name))
        if self.containers[name].running:
            raise _failure(["rm", name], "cannot remove a running container")
        del self.containers[name]

    def run_container(self, name: str, image: str, **kwargs) -> str:
        self.calls.append(("run", name, image))
        if name in self.containers:
            raise _failure(["run", name], f'Conflict. The container name "/{name}" is already in use')
        if image not in self.images:
            raise _failure(["run", name], f"Unable to find image '{image}' locally")
        self._next_id += 1
        container_id = f"{self._next_id:064x}"
        self.containers[name] = ContainerInfo(
            name=name,
            id=container_id[:12],
            image=image,
            state="running",
            status="Up 1 second",
        )
        self.run_specs[name] = kwargs
        return container_id

    def running_names(self) -> list[str]:
        return sorted(c.name for c in self.containers.values() if c.running)


SERVICE_IMAGES = {
    "cotandem-backend:latest",
    "cotandem-frontend:latest",
    "flexy-dev-sandbox:latest",
}


@pytest.fixture
def fake_docker() -> FakeDockerClient:
    """Fake engine with the three required service images present."""
    return FakeDockerClient(images=set(SERVICE_IMAGES) | {"kai-code-server:latest"})


@pytest.fixture
def empty_docker() -> FakeDockerClient:
    """Fake engine with no images at all."""
    return FakeDockerClient()


@pytest.fixture
def make_docker() -> type[FakeDockerClient]:
    """The fake engine class, for tests that need custom initial state."""
    return FakeDockerClient


# ==============================================================================
# Configuration Fixtures
# ==============================================================================


@pytest.fixture
def kai_config(tmp_path: Path) -> KaiConfig:
    """KaiConfig whose directories live under tmp_path."""
    return KaiConfig.model_validate(
        {
            "directories": {
                "kai_dir": str(tmp_path / "cotandem"),
                "base_dir": str(tmp_path / "KaiBase"),
            },
            "health": {"interval": 0.01, "backend_timeout": 0.05, "frontend_timeout": 0.05},
        }
    )


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Keep tests away from the real user configuration.

    Points XDG_CONFIG_HOME, DOCKER_CONFIG and HOME at temp directories and
    clears every KAI_* variable.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("DOCKER_CONFIG", str(home / ".docker"))
    for name in [
        "KAI_DIR",
        "KAI_BASE_DIR",
        "KAI_REPO",
        "KAI_GITHUB_USER",
        "KAI_REGISTRY",
        "KAI_NETWORK",
        "KAI_CODE_SERVER_PASSWORD",
        "KAI_API_BASE_URL",
    ]:
        monkeypatch.delenv(name, raising=False)
    return home
