"""
Default service definitions.

The backend and code-server run privileged with the host Docker socket
mounted so they can launch and manage sibling sandbox containers. Both run
with the invoking user's UID/GID so files in the base directory stay owned
by that user.
"""

import os

from kaictl.core.config.models import KaiConfig

from .models import PortMapping, ServiceSpec, VolumeMapping

DOCKER_SOCKET = "/var/run/docker.sock"
BASE_ROOT_MOUNT = "/base-root"

BACKEND_CONTAINER = "kai-backend"
CODE_SERVER_CONTAINER = "kai-code-server"
FRONTEND_CONTAINER = "kai-frontend"

# Container-side ports
BACKEND_PORT = 9900
FRONTEND_PORT = 80
CODE_SERVER_PORT = 8080

# Managed containers in start order
CONTAINER_NAMES = (BACKEND_CONTAINER, CODE_SERVER_CONTAINER, FRONTEND_CONTAINER)


def current_ids() -> tuple[str, str]:
    """UID and GID of the invoking user."""
    return str(os.getuid()), str(os.getgid())


def build_service_specs(
    config: KaiConfig,
    images: dict[str, str],
    user_id: str | None = None,
    group_id: str | None = None,
) -> list[ServiceSpec]:
    """
    Build the managed service specs in start order.

    Args:
        config: Invocation configuration
        images: Local image per role (backend, frontend, sandbox, code-server)
        user_id: UID passed to the containers (defaults to the current user)
        group_id: GID passed to the containers (defaults to the current group)

    Returns:
        Specs for backend, code-server and frontend, in that order
    """
    if user_id is None or group_id is None:
        uid, gid = current_ids()
        user_id = user_id or uid
        group_id = group_id or gid

    base_root = str(config.directories.base_dir)
    code_server_dir = config.directories.code_server_dir
    network = config.services.network
    ids = {"USER_ID": user_id, "GROUP_ID": group_id}

    backend = ServiceSpec(
        name="backend",
        container_name=BACKEND_CONTAINER,
        image=images["backend"],
        network=network,
        privileged=True,
        ports=[PortMapping(host=config.ports.backend, container=BACKEND_PORT)],
        env={
            "NODE_ENV": config.services.node_env,
            "PORT": str(BACKEND_PORT),
            "DOCKER_NETWORK": network,
            "IMAGE_NAME": images["sandbox"],
            "KAI_BASE_ROOT": base_root,
            **ids,
        },
        volumes=[
            VolumeMapping(host=DOCKER_SOCKET, container=DOCKER_SOCKET),
            VolumeMapping(host=base_root, container=BASE_ROOT_MOUNT),
        ],
    )

    code_server = ServiceSpec(
        name="code-server",
        container_name=CODE_SERVER_CONTAINER,
        image=images["code-server"],
        network=network,
        privileged=True,
        ports=[PortMapping(host=config.ports.code_server, container=CODE_SERVER_PORT)],
        env={"PASSWORD": config.services.code_server_password, **ids},
        volumes=[
            VolumeMapping(host=DOCKER_SOCKET, container=DOCKER_SOCKET),
            VolumeMapping(host=base_root, container=BASE_ROOT_MOUNT),
            VolumeMapping(host=str(code_server_dir / "config"), container="/home/coder/.config"),
            VolumeMapping(host=str(code_server_dir / "local"), container="/home/coder/.local"),
        ],
        command=["--bind-addr", f"0.0.0.0:{CODE_SERVER_PORT}"],
    )

    frontend = ServiceSpec(
        name="frontend",
        container_name=FRONTEND_CONTAINER,
        image=images["frontend"],
        network=network,
        ports=[PortMapping(host=config.ports.frontend, container=FRONTEND_PORT)],
        # Empty selects proxy mode
        env={"API_BASE_URL": config.services.api_base_url},
    )

    return [backend, code_server, frontend]
