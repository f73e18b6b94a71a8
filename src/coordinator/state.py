"""Project state coordinator.

Combines two independent sources of deployment data into one consistent
view: full project snapshots fetched over HTTP (on demand and by the
status poller while a build runs) and the incremental websocket log stream
of the selected deployment. The coordinator owns the snapshot, the
selection, the log buffer, the poller and the stream connection, and is
the only thing that calls the log sink.

Everything runs on one asyncio event loop; state only changes in reaction
to a completed fetch, a timer tick, or a stream event.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from src.client.api import ApiError
from src.client.stream import LogStreamConnection
from src.coordinator.poller import StatusPoller
from src.coordinator.sink import CallbackLogSink, LogSink
from src.models import ConnectionState, Deployment, DeploymentStatus, Project
from src.utils.config import Settings, get_settings
from src.utils.logger import ProjectLogger, get_logger
from src.utils.sanitization import normalize_line_endings

logger = get_logger()


@dataclass(frozen=True)
class ProjectView:
    """Read-only snapshot of the coordinator state for presentation code."""

    project: Optional[Project]
    loading: bool
    active_deployment_id: Optional[str]
    logs: str
    connection_state: ConnectionState

    @property
    def active_deployment(self) -> Optional[Deployment]:
        if self.project is None:
            return None
        return self.project.find_deployment(self.active_deployment_id)

    @property
    def status(self) -> DeploymentStatus:
        deployment = self.active_deployment
        return deployment.status if deployment else DeploymentStatus.UNKNOWN


Listener = Callable[[ProjectView], None]


class ProjectState:
    """Live view of one project's deployments and console output."""

    def __init__(
        self,
        project_id: str,
        api: Any,
        sink: Optional[LogSink] = None,
        settings: Optional[Settings] = None,
        connect: Optional[Callable[..., Any]] = None,
    ):
        """Initialize the coordinator.

        Args:
            project_id: Project to monitor.
            api: Authenticated request capability exposing ``get_project``,
                ``redeploy_project``, ``stop_project`` and ``stream_url``
                (see ``DeployApiClient``).
            sink: Log display surface. Defaults to a sink that drops output.
            settings: Timing and display settings.
            connect: Websocket connect function for log streams.
        """
        self.project_id = project_id
        self.api = api
        self.sink: LogSink = sink or CallbackLogSink()
        self.settings = settings or get_settings()
        self._connect = connect

        self.project: Optional[Project] = None
        self.loading = True
        self.active_deployment_id: Optional[str] = None
        self._log_buffer = ""

        self._connection: Optional[LogStreamConnection] = None
        self._poller = StatusPoller(
            on_tick=self._spawn_refresh,
            should_poll=self._is_building,
            interval=self.settings.poll_interval,
        )
        self._refresh_tasks: set[asyncio.Task] = set()
        self._timers: set[asyncio.TimerHandle] = set()
        self._listeners: list[Listener] = []

        # Fetch ordering: responses older than the newest applied one are dropped
        self._fetch_seq = 0
        self._applied_seq = 0

        self._initialized = False
        self._disposed = False
        self.events = ProjectLogger(project_id)

    # ── read accessors ────────────────────────────────────────

    @property
    def logs(self) -> str:
        """Raw log buffer of the active deployment."""
        return self._log_buffer

    @property
    def active_deployment(self) -> Optional[Deployment]:
        if self.project is None:
            return None
        return self.project.find_deployment(self.active_deployment_id)

    @property
    def status(self) -> DeploymentStatus:
        """Status of the active deployment."""
        deployment = self.active_deployment
        return deployment.status if deployment else DeploymentStatus.UNKNOWN

    @property
    def connection_state(self) -> ConnectionState:
        if self._connection is None:
            return ConnectionState.CLOSED
        return self._connection.state

    @property
    def poller(self) -> StatusPoller:
        return self._poller

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def snapshot(self) -> ProjectView:
        """Capture the current state."""
        return ProjectView(
            project=self.project,
            loading=self.loading,
            active_deployment_id=self.active_deployment_id,
            logs=self._log_buffer,
            connection_state=self.connection_state,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a fresh view after every change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if self._disposed or not self._listeners:
            return
        view = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.error(f"[{self.project_id}] State listener failed: {e}")

    # ── lifecycle ─────────────────────────────────────────────

    async def initialize(self) -> None:
        """Load the first snapshot, select a deployment and arm the poller.

        Raises:
            RuntimeError: If the instance was already initialized or disposed.
        """
        if self._initialized or self._disposed:
            raise RuntimeError("ProjectState is single-use; create a new instance")
        self._initialized = True

        await self.refresh_snapshot()
        if not self._disposed:
            self._poller.start()

    def dispose(self) -> None:
        """Release the poller, the stream and every pending refresh.

        Safe to call more than once. Nothing reaches the sink or the
        listeners afterwards.
        """
        if self._disposed:
            return
        self._disposed = True

        self._poller.stop()
        self._close_stream()

        for handle in self._timers:
            handle.cancel()
        self._timers.clear()

        current = asyncio.current_task() if _loop_running() else None
        for task in self._refresh_tasks:
            if task is not current:
                task.cancel()

        self._listeners.clear()
        logger.debug(f"[{self.project_id}] Disposed")

    async def aclose(self) -> None:
        """Dispose and wait for background work to wind down."""
        connection = self._connection
        tasks = [t for t in self._refresh_tasks if t is not asyncio.current_task()]
        self.dispose()
        if connection is not None:
            await connection.wait_closed()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "ProjectState":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ── snapshots ─────────────────────────────────────────────

    async def refresh_snapshot(self) -> None:
        """Fetch the project and reconcile selection and streaming with it.

        Failures are logged and leave the previous snapshot in place. The
        loading flag is cleared whatever the outcome.
        """
        if self._disposed:
            return

        self._fetch_seq += 1
        seq = self._fetch_seq

        try:
            project = await self.api.get_project(self.project_id)
            if self._disposed:
                logger.debug(f"[{self.project_id}] Discarding snapshot #{seq} after dispose")
                return
            if seq < self._applied_seq:
                logger.debug(
                    f"[{self.project_id}] Discarding stale snapshot #{seq} "
                    f"(already applied #{self._applied_seq})"
                )
            else:
                self._applied_seq = seq
                self._apply_snapshot(project)
        except (ApiError, ValidationError) as e:
            self.events.log_refresh_failed(e)
        except Exception as e:
            logger.exception(f"[{self.project_id}] Unexpected error while refreshing")
            self.events.log_refresh_failed(e)
        finally:
            self.loading = False

        self._notify()

    async def refresh(self) -> None:
        """User-triggered refresh: raises the loading flag while fetching."""
        if self._disposed:
            return
        self.loading = True
        self._notify()
        await self.refresh_snapshot()

    def _apply_snapshot(self, project: Project) -> None:
        previous = self.project
        self.project = project

        # Selection survives a refresh when its id is still listed
        target = project.find_deployment(self.active_deployment_id) or project.latest_deployment
        if target is None:
            self._clear_selection()
            return

        if target.id != self.active_deployment_id:
            self.select_deployment(target)
            return

        held = previous.find_deployment(target.id) if previous else None
        if held is None or held.status != target.status or len(held.logs) != len(target.logs):
            self.select_deployment(target, force=True)
        else:
            self._reconcile_stream(target)

    def _clear_selection(self) -> None:
        had_selection = self.active_deployment_id is not None
        self.active_deployment_id = None
        self._log_buffer = ""
        self._close_stream()
        if had_selection:
            self._emit_clear()

    # ── selection ─────────────────────────────────────────────

    def select_deployment(self, deployment: Deployment, force: bool = False) -> None:
        """Make ``deployment`` the active one and replay its stored logs.

        Re-selecting the active deployment is a no-op unless ``force`` is set.

        Raises:
            ValueError: If the deployment is not part of the loaded snapshot.
        """
        if self._disposed:
            return
        if deployment.id == self.active_deployment_id and not force:
            return
        current = self.project.find_deployment(deployment.id) if self.project else None
        if current is None:
            raise ValueError(
                f"Deployment {deployment.id} is not part of project {self.project_id}"
            )

        # Replay and stream from the held snapshot, never from a caller's copy
        self.active_deployment_id = current.id
        self._log_buffer = current.logs

        self._emit_clear()
        self._emit_chunk(current.logs)
        self.events.log_selection(current.id, current.status.value, len(current.logs))

        self._reconcile_stream(current)
        self._notify()

    def _emit_clear(self) -> None:
        try:
            self.sink.on_clear()
        except Exception as e:
            logger.error(f"[{self.project_id}] Log sink failed to clear: {e}")

    def _emit_chunk(self, text: str) -> None:
        try:
            self.sink.on_chunk(normalize_line_endings(text, self.settings.line_ending))
        except Exception as e:
            logger.error(f"[{self.project_id}] Log sink failed to write: {e}")

    def _is_building(self) -> bool:
        return self.status is DeploymentStatus.BUILDING

    # ── streaming ─────────────────────────────────────────────

    def _reconcile_stream(self, deployment: Deployment) -> None:
        """Keep exactly one open stream while the deployment is building."""
        if deployment.status is not DeploymentStatus.BUILDING:
            self._close_stream()
            return

        connection = self._connection
        if (
            connection is not None
            and connection.is_open
            and connection.deployment_id == deployment.id
        ):
            return
        self._open_stream(deployment.id)

    def _open_stream(self, deployment_id: str) -> None:
        self._close_stream()
        url = self.api.stream_url(deployment_id)
        connection = LogStreamConnection(
            deployment_id,
            url,
            on_data=self._handle_stream_data,
            on_closed=self._handle_stream_closed,
            connect=self._connect,
        )
        self._connection = connection
        connection.open()
        self.events.log_stream_opened(deployment_id, url)

    def _close_stream(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def _handle_stream_data(self, connection: LogStreamConnection, text: str) -> None:
        if self._disposed or connection is not self._connection:
            return
        self._log_buffer += text
        self._emit_chunk(text)
        self._notify()

    def _handle_stream_closed(self, connection: LogStreamConnection) -> None:
        if self._disposed or connection is not self._connection:
            return
        # The server may end the stream without a final status push
        reconcile = self._is_building()
        self.events.log_stream_closed(connection.deployment_id, reconcile)
        self._notify()
        if reconcile:
            self._spawn_refresh()

    def handle_build_completed(self) -> None:
        """Pull the latest status once a build is known to be finished."""
        self._spawn_refresh()

    # ── actions ───────────────────────────────────────────────

    async def request_redeploy(self, commit: Optional[str] = None) -> bool:
        """Ask the server for a new deployment.

        Returns:
            True if the server accepted the request.
        """
        if self._disposed or self.project is None:
            return False
        try:
            await self.api.redeploy_project(self.project.id, commit)
        except ApiError as e:
            self.events.log_action("redeploy", False, str(e))
            return False

        self.events.log_action("redeploy", True, f"Commit {commit}" if commit else "")
        self._schedule_refresh(self.settings.action_refresh_delay)
        return True

    async def request_stop(self) -> bool:
        """Ask the server to stop the project.

        Returns:
            True if the server accepted the request.
        """
        if self._disposed or self.project is None:
            return False
        try:
            await self.api.stop_project(self.project.id)
        except ApiError as e:
            self.events.log_action("stop", False, str(e))
            return False

        self.events.log_action("stop", True)
        self._schedule_refresh(self.settings.action_refresh_delay)
        return True

    # ── background work ───────────────────────────────────────

    def _spawn_refresh(self) -> Optional[asyncio.Task]:
        if self._disposed:
            return None
        task = asyncio.create_task(self.refresh_snapshot())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._on_refresh_done)
        return task

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._refresh_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[{self.project_id}] Snapshot refresh crashed: {error!r}")

    def _schedule_refresh(self, delay: float) -> None:
        if self._disposed:
            return
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._timers.discard(handle)
            self._spawn_refresh()

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
