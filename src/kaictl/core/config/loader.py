"""
Layered configuration loading.

Layers, lowest first:
    model defaults, $XDG_CONFIG_HOME/kai/config.json, ./.kai.json, KAI_* env

Commands apply their flags last through KaiConfig.with_overrides(). There
is no cache; every call to load_config() reads the layers again.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import KaiConfig

logger = logging.getLogger(__name__)

USER_CONFIG_DIR = "kai"
CONFIG_FILENAME = "config.json"
PROJECT_CONFIG_FILENAME = ".kai.json"

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "KAI_DIR": ("directories", "kai_dir"),
    "KAI_BASE_DIR": ("directories", "base_dir"),
    "KAI_REPO": ("repo", "url"),
    "KAI_GITHUB_USER": ("registry", "user"),
    "KAI_REGISTRY": ("registry", "host"),
    "KAI_NETWORK": ("services", "network"),
    "KAI_CODE_SERVER_PASSWORD": ("services", "code_server_password"),
    "KAI_API_BASE_URL": ("services", "api_base_url"),
}

# An empty value for these still counts as set
EMPTY_ALLOWED = frozenset({"KAI_API_BASE_URL"})


def get_xdg_config_home() -> Path:
    """$XDG_CONFIG_HOME, or ~/.config when unset."""
    configured = os.environ.get("XDG_CONFIG_HOME")
    return Path(configured) if configured else Path.home() / ".config"


def get_user_config_path() -> Path:
    return get_xdg_config_home() / USER_CONFIG_DIR / CONFIG_FILENAME


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Location of .kai.json for a project directory (cwd by default)."""
    return (cwd or Path.cwd()) / PROJECT_CONFIG_FILENAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Return `base` updated with `override`, recursing into nested dicts.

    Neither argument is modified.

    Example:
        >>> deep_merge({"ports": {"backend": 1}}, {"ports": {"frontend": 2}})
        {'ports': {'backend': 1, 'frontend': 2}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Read one config layer.

    A missing file, unparseable JSON or a top-level value that is not an
    object all yield None; a broken file is logged and skipped.
    """
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config at {path}: top-level value is not an object")
        return None
    return data


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Layer KAI_* environment variables over a config dict.

    Empty values are skipped except for KAI_API_BASE_URL, where an empty
    string selects proxy mode.
    """
    overrides: dict[str, dict[str, str]] = {}
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None or (value == "" and env_name not in EMPTY_ALLOWED):
            continue
        overrides.setdefault(section, {})[key] = value
    return deep_merge(config_dict, overrides)


def load_config(project_dir: Path | None = None) -> KaiConfig:
    """
    Build the configuration for one invocation.

    Args:
        project_dir: Directory holding .kai.json (defaults to cwd)

    Returns:
        Validated KaiConfig

    Raises:
        ValidationError: If a layer sets an invalid value
    """
    layers = [
        load_json_file(get_user_config_path()),
        load_json_file(get_project_config_path(project_dir)),
    ]
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            logger.debug(f"Merging config layer with sections: {', '.join(layer)}")
            merged = deep_merge(merged, layer)
    return KaiConfig.model_validate(apply_env_overrides(merged))
