"""
Docker data models.

This module defines Pydantic models for command results and the typed
records decoded from Docker's `--format '{{json .}}'` output.
"""

from pydantic import BaseModel, ConfigDict, Field


class RunResult(BaseModel):
    """Outcome of one external command invocation."""

    model_config = ConfigDict(frozen=True)

    args: list[str] = Field(
        default_factory=list,
        description="Full argv that was executed",
    )
    exit_code: int = Field(
        description="Process exit status",
    )
    stdout: str = Field(
        default="",
        description="Captured standard output",
    )
    stderr: str = Field(
        default="",
        description="Captured standard error",
    )
    duration_ms: int = Field(
        default=0,
        ge=0,
        description="Wall-clock duration in milliseconds",
    )

    @property
    def ok(self) -> bool:
        """True when the command exited with status 0."""
        return self.exit_code == 0


class ContainerInfo(BaseModel):
    """A container as reported by `docker ps --format '{{json .}}'`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(alias="Names")
    id: str = Field(default="", alias="ID")
    image: str = Field(default="", alias="Image")
    state: str = Field(default="", alias="State")
    status: str = Field(default="", alias="Status")
    ports: str = Field(default="", alias="Ports")

    @property
    def running(self) -> bool:
        """True when Docker reports the container as running."""
        return self.state == "running"


class ImageInfo(BaseModel):
    """An image as reported by `docker images --format '{{json .}}'`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    repository: str = Field(alias="Repository")
    tag: str = Field(default="<none>", alias="Tag")
    id: str = Field(default="", alias="ID")
    size: str = Field(default="", alias="Size")
    created_at: str = Field(default="", alias="CreatedAt")

    @property
    def reference(self) -> str:
        """`repository:tag` form of this image."""
        return f"{self.repository}:{self.tag}"

    @property
    def dangling(self) -> bool:
        """True for untagged images."""
        return self.tag == "<none>"


class NetworkInfo(BaseModel):
    """A network as reported by `docker network ls --format '{{json .}}'`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(alias="Name")
    id: str = Field(default="", alias="ID")
    driver: str = Field(default="", alias="Driver")
