"""Environment file helpers.

kaictl reads KAI_* settings from the process environment, which may be
seeded from dotenv files:

  os.environ (pre-existing) > ./.env > ~/.config/kai/.env

A value already exported in the shell is never replaced by a file.
The same helpers read and write the backend env file that setup creates.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Mapping

from dotenv import dotenv_values


def read_env_file(path: Path) -> dict[str, str]:
    """Parse a dotenv file, dropping keys without values. Missing file -> {}."""
    if not path.is_file():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def write_env_file(path: Path, values: Mapping[str, str], header: str | None = None) -> None:
    """
    Write a dotenv file, creating parent directories as needed.

    Args:
        path: Destination file
        values: Variables in the order they should appear
        header: Optional comment placed on the first line
    """
    lines = [f"# {header}"] if header else []
    lines.extend(f"{key}={value}" for key, value in values.items())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """Seed os.environ from user and project .env files.

    Project files win over user files; neither overrides variables that
    were set before this call.

    Returns:
        The variables that were added to os.environ
    """
    if project_dir is None:
        project_dir = Path.cwd()
    if user_env_paths is None:
        xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        user_env_paths = [xdg_home / "kai" / ".env"]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env"]

    layered: dict[str, str] = {}
    for path in [*user_env_paths, *project_env_paths]:
        layered.update(read_env_file(Path(path)))

    applied = {k: v for k, v in layered.items() if k not in os.environ}
    os.environ.update(applied)
    return applied
