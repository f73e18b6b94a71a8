"""Pydantic models for the deployment monitor."""

from src.models.project import (
    ConnectionState,
    Deployment,
    DeploymentStatus,
    EnvVar,
    Project,
)

__all__ = [
    "ConnectionState",
    "Deployment",
    "DeploymentStatus",
    "EnvVar",
    "Project",
]
