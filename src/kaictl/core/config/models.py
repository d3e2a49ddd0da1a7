"""
Configuration data models for kaictl.

These models define the structure of .kai.json and ~/.config/kai/config.json
files, with validation and type safety via Pydantic. One KaiConfig is built
per invocation and passed explicitly to every component.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class DirectoriesConfig(BaseModel):
    """Host directories used by the platform."""

    kai_dir: Path = Field(
        default_factory=lambda: Path.home() / "cotandem",
        description="Checkout of the Kai source repository",
    )
    base_dir: Path = Field(
        default_factory=lambda: Path.home() / "KaiBase",
        description="Root for sandbox project data and editor persistence",
    )
    env_file: Path = Field(
        default=Path("backend/.env.local"),
        description="Backend environment file, relative to kai_dir",
    )
    sandbox_context: Path = Field(
        default=Path("Flexy"),
        description="Sandbox image build context, relative to kai_dir",
    )

    @property
    def env_file_path(self) -> Path:
        """Absolute path of the backend environment file."""
        return self.env_file if self.env_file.is_absolute() else self.kai_dir / self.env_file

    @property
    def sandbox_context_path(self) -> Path:
        """Absolute path of the sandbox build context."""
        if self.sandbox_context.is_absolute():
            return self.sandbox_context
        return self.kai_dir / self.sandbox_context

    @property
    def code_server_dir(self) -> Path:
        """Editor persistence root under the base directory."""
        return self.base_dir / ".kai" / "code-server"


class RepoConfig(BaseModel):
    """Kai source repository."""

    url: str = Field(
        default="https://github.com/misterlex/cotandem.git",
        description="Git URL cloned by setup",
    )
    branch: str = Field(
        default="main",
        description="Branch pulled when the checkout already exists",
    )


class RegistryConfig(BaseModel):
    """Registry the service images are pulled from."""

    host: str = Field(
        default="ghcr.io",
        description="Registry host (docker.io, ghcr.io, ...)",
    )
    user: str | None = Field(
        default="misterlex223",
        description="Registry namespace (user or organization)",
    )


class ImagesConfig(BaseModel):
    """Local image names expected by the services."""

    backend: str = Field(default="cotandem-backend")
    frontend: str = Field(default="cotandem-frontend")
    sandbox: str = Field(default="flexy-dev-sandbox")
    code_server: str = Field(
        default="kai-code-server",
        description="Custom code-server image with the Docker CLI installed",
    )
    code_server_fallback: str = Field(
        default="codercom/code-server:latest",
        description="Public image used when the custom code-server image is absent",
    )
    tag: str = Field(default="latest")


class PortsConfig(BaseModel):
    """Host port bindings."""

    backend: int = Field(default=9900, ge=1, le=65535)
    frontend: int = Field(default=9901, ge=1, le=65535)
    code_server: int = Field(default=8443, ge=1, le=65535)


class HealthConfig(BaseModel):
    """Readiness probe settings."""

    interval: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between probe attempts",
    )
    backend_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Ceiling in seconds for the backend probe",
    )
    frontend_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Ceiling in seconds for the frontend probe",
    )
    backend_path: str = Field(
        default="/api/health",
        description="Backend health endpoint path",
    )
    host: str = Field(
        default="localhost",
        description="Host the probes connect to",
    )


class ServicesConfig(BaseModel):
    """Settings passed through to the launched services."""

    network: str = Field(
        default="kai-net",
        description="Docker network shared by services and sandboxes",
    )
    code_server_password: str = Field(
        default="kai-dev",
        description="Password for the code-server web UI",
    )
    api_base_url: str = Field(
        default="",
        description="Frontend backend URL; empty means proxy mode",
    )
    node_env: str = Field(default="production")


class KaiConfig(BaseModel):
    """
    Complete kaictl configuration.

    Built once per invocation by load_config() and never mutated; CLI flag
    overrides produce a new instance via with_overrides().
    """

    model_config = ConfigDict(frozen=True)

    directories: DirectoriesConfig = Field(default_factory=DirectoriesConfig)
    repo: RepoConfig = Field(default_factory=RepoConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    ports: PortsConfig = Field(default_factory=PortsConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    services: ServicesConfig = Field(default_factory=ServicesConfig)

    def with_overrides(self, **sections: dict[str, object]) -> "KaiConfig":
        """
        Return a copy with per-section overrides applied.

        None values are ignored so CLI options that were not given leave
        the loaded configuration untouched.

        Example:
            >>> config.with_overrides(directories={"base_dir": Path("/data")})
        """
        data = self.model_dump()
        for section, values in sections.items():
            for key, value in values.items():
                if value is not None:
                    data[section][key] = value
        return KaiConfig.model_validate(data)
