"""Project and deployment models as returned by the deployment API."""

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class DeploymentStatus(str, Enum):
    """Status of a single deployment attempt."""

    QUEUED = "queued"
    BUILDING = "building"  # Only status that drives streaming and polling
    SUCCESS = "success"
    FAILED = "failed"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "DeploymentStatus":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        """Whether the deployment still produces log output."""
        return self is DeploymentStatus.BUILDING


class ConnectionState(str, Enum):
    """State of the log stream connection for the selected deployment."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    STREAMING = "streaming"


def _coerce_id(value: Any) -> Any:
    """The backend serializes numeric primary keys; ids are strings here."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class EnvVar(BaseModel):
    """A project environment variable."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    value: str = ""


class Deployment(BaseModel):
    """One build/run attempt of a project."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "ID"))
    project_id: Optional[str] = None
    status: DeploymentStatus = DeploymentStatus.UNKNOWN
    commit: str = ""
    logs: str = Field(default="", description="Cumulative stored log text")
    url: str = ""
    created_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("created_at", "CreatedAt")
    )
    updated_at: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("updated_at", "UpdatedAt")
    )

    @field_validator("id", "project_id", mode="before")
    @classmethod
    def parse_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value: Any) -> DeploymentStatus:
        if value is None:
            return DeploymentStatus.UNKNOWN
        return DeploymentStatus(value)

    @field_validator("logs", "commit", "url", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Project(BaseModel):
    """A full project snapshot, deployments ordered newest first."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "ID"))
    name: str = ""
    repo_url: str = ""
    port: Optional[int] = None
    deployments: list[Deployment] = Field(default_factory=list)
    env_vars: list[EnvVar] = Field(default_factory=list)
    webhook_secret: str = ""

    # Build configuration
    build_command: str = ""
    start_command: str = ""
    install_command: str = ""
    runtime: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("deployments", "env_vars", mode="before")
    @classmethod
    def none_as_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator(
        "name",
        "repo_url",
        "webhook_secret",
        "build_command",
        "start_command",
        "install_command",
        "runtime",
        mode="before",
    )
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def latest_deployment(self) -> Optional[Deployment]:
        """The newest deployment, if any."""
        return self.deployments[0] if self.deployments else None

    @property
    def status(self) -> DeploymentStatus:
        """Status of the newest deployment."""
        latest = self.latest_deployment
        return latest.status if latest else DeploymentStatus.UNKNOWN

    def find_deployment(self, deployment_id: Optional[str]) -> Optional[Deployment]:
        """Look up a deployment by id."""
        if deployment_id is None:
            return None
        for deployment in self.deployments:
            if deployment.id == deployment_id:
                return deployment
        return None
