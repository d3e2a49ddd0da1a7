"""
Configuration models and loading.

This module provides Pydantic models for kaictl configuration
with multi-layer merging: defaults < user < project < env vars < CLI flags.
"""

from .env import load_layered_env, read_env_file, write_env_file
from .loader import (
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    DirectoriesConfig,
    HealthConfig,
    ImagesConfig,
    KaiConfig,
    PortsConfig,
    RegistryConfig,
    RepoConfig,
    ServicesConfig,
)

__all__ = [
    # Models
    "DirectoriesConfig",
    "HealthConfig",
    "ImagesConfig",
    "KaiConfig",
    "PortsConfig",
    "RegistryConfig",
    "RepoConfig",
    "ServicesConfig",
    # Loader functions
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
    "read_env_file",
    "write_env_file",
]
