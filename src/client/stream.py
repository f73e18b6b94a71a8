"""Websocket connection delivering live log output for one deployment."""

import asyncio
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import WebSocketException

from src.models import ConnectionState
from src.utils.logger import get_logger
from src.utils.sanitization import decode_frame

logger = get_logger()

DataCallback = Callable[["LogStreamConnection", str], None]
ClosedCallback = Callable[["LogStreamConnection"], None]


class LogStreamConnection:
    """A push channel bound to a single deployment id for its lifetime.

    The server only ever sends text frames and closes the channel when the
    build ends; the client never sends anything. A remote close of any kind
    (clean, protocol error, network failure) is reported once through
    ``on_closed``, and so is an error raised by ``on_data``, which ends the
    stream. A local ``close()`` is silent.
    """

    def __init__(
        self,
        deployment_id: str,
        url: str,
        on_data: DataCallback,
        on_closed: Optional[ClosedCallback] = None,
        connect: Optional[Callable[..., Any]] = None,
    ):
        """Initialize the connection without opening it.

        Args:
            deployment_id: Deployment whose logs are streamed.
            url: Websocket URL of the stream.
            on_data: Called with each received text chunk, in receipt order.
            on_closed: Called once when the server or network ends the stream.
            connect: Websocket connect function, ``websockets.connect`` by default.
        """
        self.deployment_id = deployment_id
        self.url = url
        self._on_data = on_data
        self._on_closed = on_closed
        self._connect = connect or websockets.connect
        self._task: Optional[asyncio.Task] = None
        self._closed_locally = False
        self.state = ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        """Whether the connection is connecting or streaming."""
        return self.state != ConnectionState.CLOSED

    def open(self) -> None:
        """Start connecting in the background. Must run inside an event loop."""
        if self._task is not None:
            raise RuntimeError(f"Log stream for {self.deployment_id} was already opened")
        self.state = ConnectionState.CONNECTING
        self._task = asyncio.create_task(
            self._run(), name=f"log-stream-{self.deployment_id}"
        )

    def close(self) -> None:
        """Close the connection. Takes effect immediately and never fails."""
        self._closed_locally = True
        self.state = ConnectionState.CLOSED
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the background task to finish (used on shutdown and in tests)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        try:
            async with self._connect(self.url) as websocket:
                if self._closed_locally:
                    return
                self.state = ConnectionState.STREAMING
                logger.debug(f"Log stream for {self.deployment_id} established")
                async for frame in websocket:
                    if self._closed_locally:
                        return
                    self._on_data(self, decode_frame(frame))
        except (WebSocketException, OSError) as e:
            logger.warning(f"Log stream for {self.deployment_id} failed: {e}")
        except Exception as e:
            logger.error(f"Log stream handler for {self.deployment_id} failed: {e}")
        finally:
            was_local = self._closed_locally
            self.state = ConnectionState.CLOSED
            self._closed_locally = True

        if not was_local and self._on_closed is not None:
            self._on_closed(self)
