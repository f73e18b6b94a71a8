"""Shared fixtures: fake API, fake websocket connector and a recording sink."""

import asyncio
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.models import Project
from src.utils.config import Settings

_END = object()


class FakeWebSocket:
    """Server side of a log stream, driven by the test."""

    def __init__(self, url: str):
        self.url = url
        self.closed = False
        self._frames: asyncio.Queue = asyncio.Queue()

    def push(self, frame: Any) -> None:
        """Deliver a frame to the client."""
        self._frames.put_nowait(frame)

    def finish(self) -> None:
        """End the stream cleanly from the server side."""
        self._frames.put_nowait(_END)

    def fail(self, error: BaseException) -> None:
        """Break the stream with an error."""
        self._frames.put_nowait(error)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> Any:
        item = await self._frames.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class _FakeConnect:
    def __init__(self, connector: "FakeConnector", url: str):
        self.connector = connector
        self.url = url
        self.websocket: Optional[FakeWebSocket] = None

    async def __aenter__(self) -> FakeWebSocket:
        if self.connector.fail_with is not None:
            raise self.connector.fail_with
        self.websocket = FakeWebSocket(self.url)
        self.connector.sockets.append(self.websocket)
        return self.websocket

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.websocket is not None:
            self.websocket.closed = True


class FakeConnector:
    """Stand-in for ``websockets.connect`` recording every connection."""

    def __init__(self):
        self.urls: list[str] = []
        self.sockets: list[FakeWebSocket] = []
        self.fail_with: Optional[BaseException] = None

    def __call__(self, url: str) -> _FakeConnect:
        self.urls.append(url)
        return _FakeConnect(self, url)


class RecordingSink:
    """Log sink recording calls in order."""

    def __init__(self):
        self.calls: list[tuple] = []

    def on_chunk(self, text: str) -> None:
        self.calls.append(("chunk", text))

    def on_clear(self) -> None:
        self.calls.append(("clear",))

    @property
    def chunks(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "chunk"]


@pytest.fixture
def connector():
    """Fake websocket connect function."""
    return FakeConnector()


@pytest.fixture
def sink():
    """Recording log sink."""
    return RecordingSink()


@pytest.fixture
def settings():
    """Settings with a poll interval long enough to stay out of the way."""
    return Settings(
        _env_file=None,
        api_base_url="http://api.test",
        poll_interval=60.0,
        action_refresh_delay=0.01,
    )


@pytest.fixture
def api():
    """Request capability with async API methods."""
    api = MagicMock()
    api.get_project = AsyncMock()
    api.redeploy_project = AsyncMock(return_value={"status": "queued"})
    api.stop_project = AsyncMock(return_value={"status": "stopped"})
    api.stream_url = MagicMock(
        side_effect=lambda deployment_id: f"ws://api.test/api/deployments/{deployment_id}/logs/stream"
    )
    return api


@pytest.fixture
def make_project():
    """Build a project snapshot from deployment dicts, newest first."""

    def _make(*deployments: dict, project_id: str = "p1") -> Project:
        return Project.model_validate(
            {
                "id": project_id,
                "name": "demo",
                "repo_url": "https://github.com/example/demo",
                "deployments": list(deployments),
            }
        )

    return _make


@pytest.fixture
def settle():
    """Let pending tasks and callbacks run."""

    async def _settle(rounds: int = 20) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle
