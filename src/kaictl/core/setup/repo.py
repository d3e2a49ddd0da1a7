"""
Kai source checkout helpers.

Clones (or updates) the Kai repository and installs the JavaScript
dependencies of its backend and frontend packages with pnpm.
"""

from __future__ import annotations

import logging
from pathlib import Path

from kaictl.core.docker.runner import CommandRunner
from kaictl.core.exceptions import MissingPrerequisite

logger = logging.getLogger(__name__)

# Package directories inside the checkout that get `pnpm install`
PACKAGE_DIRS = ("backend", "frontend")

# Dependency installs can take a while on a fresh machine
INSTALL_TIMEOUT = 1800


def clone_or_update(
    runner: CommandRunner, url: str, target: Path, branch: str = "main"
) -> str:
    """Clone `url` into `target`, or pull `branch` if the checkout exists.

    Args:
        runner: Command runner
        url: Repository URL
        target: Checkout directory
        branch: Branch pulled from origin when updating

    Returns:
        'cloned' or 'updated'

    Raises:
        CommandFailed: If git fails
    """
    if target.is_dir():
        logger.info(f"Updating existing checkout at {target}")
        runner.run(["git", "pull", "origin", branch], cwd=target, check=True, interactive=True)
        return "updated"

    logger.info(f"Cloning {url} into {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    runner.run(["git", "clone", url, str(target)], check=True, interactive=True)
    return "cloned"


def ensure_pnpm(runner: CommandRunner) -> bool:
    """Make sure pnpm is on PATH, installing it globally with npm if needed.

    Returns:
        True if pnpm had to be installed

    Raises:
        MissingPrerequisite: If neither pnpm nor npm is available
        CommandFailed: If `npm install -g pnpm` fails
    """
    if runner.which("pnpm"):
        return False
    if not runner.which("npm"):
        raise MissingPrerequisite(
            "pnpm is not installed and npm is not available to install it",
            tool="pnpm",
        )
    logger.warning("pnpm is not installed, installing with npm")
    runner.run(["npm", "install", "-g", "pnpm"], check=True, interactive=True)
    return True


def install_dependencies(runner: CommandRunner, kai_dir: Path) -> list[str]:
    """Run `pnpm install` in each package directory that exists.

    Returns:
        Names of the package directories that were installed
    """
    installed = []
    for name in PACKAGE_DIRS:
        package_dir = kai_dir / name
        if not package_dir.is_dir():
            logger.debug(f"Skipping {name}: {package_dir} does not exist")
            continue
        logger.info(f"Installing {name} dependencies")
        runner.run(
            ["pnpm", "install"],
            cwd=package_dir,
            check=True,
            timeout=INSTALL_TIMEOUT,
            interactive=True,
        )
        installed.append(name)
    return installed
