"""Clients for the deployment API and its log streams."""

from src.client.api import ApiError, DeployApiClient
from src.client.stream import LogStreamConnection

__all__ = [
    "ApiError",
    "DeployApiClient",
    "LogStreamConnection",
]
