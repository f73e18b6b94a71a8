"""HTTP client for the deployment API."""

from typing import Any, Optional

import httpx

from src.models import Project
from src.utils.config import Settings, get_settings, to_websocket_url
from src.utils.logger import get_logger

logger = get_logger()


class ApiError(Exception):
    """Raised when a request to the deployment API fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeployApiClient:
    """Authenticated client for project snapshots and actions.

    The coordinator receives an instance of this class as its request
    capability; anything exposing the same four methods can stand in.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``http://localhost:8080``.
            api_key: Bearer token sent with every request.
            timeout: Request timeout in seconds.
            client: Pre-built httpx client (mainly for tests).
            settings: Settings to take defaults from.
        """
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else self.settings.api_key
        self.timeout = timeout if timeout is not None else self.settings.request_timeout
        self._client = client or httpx.AsyncClient(timeout=self.timeout)
        self._owns_client = client is None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(self, method: str, endpoint: str, data: Optional[dict] = None) -> Any:
        """Make an HTTP request to the API and return the decoded body."""
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")

        try:
            response = await self._client.request(
                method,
                url,
                json=data,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {endpoint} failed: {e}") from e

        if response.is_error:
            raise ApiError(_error_message(response), status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{method} {endpoint} returned invalid JSON",
                status_code=response.status_code,
            ) from e

    async def get_project(self, project_id: str) -> Project:
        """Fetch a full project snapshot, deployments newest first."""
        payload = await self._request("GET", f"/api/projects/{project_id}")
        return Project.model_validate(payload)

    async def redeploy_project(self, project_id: str, commit: Optional[str] = None) -> dict:
        """Trigger a new deployment, optionally pinned to a commit."""
        return await self._request(
            "POST",
            f"/api/projects/{project_id}/redeploy",
            data={"commit": commit},
        )

    async def stop_project(self, project_id: str) -> dict:
        """Stop the running deployment of a project."""
        return await self._request("POST", f"/api/projects/{project_id}/stop")

    def stream_url(self, deployment_id: str) -> str:
        """Websocket URL of a deployment's live log stream."""
        if self.settings.stream_base_url:
            base = self.settings.resolve_stream_base_url()
        else:
            base = to_websocket_url(self.base_url)
        return f"{base}/api/deployments/{deployment_id}/logs/stream"

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Extract the server's error text, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request failed: {response.status_code} {response.reason_phrase}"
