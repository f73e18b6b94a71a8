"""Project state coordination: polling, log streaming and log replay."""

from src.coordinator.poller import StatusPoller
from src.coordinator.sink import CallbackLogSink, LogSink
from src.coordinator.state import ProjectState, ProjectView

__all__ = [
    "CallbackLogSink",
    "LogSink",
    "ProjectState",
    "ProjectView",
    "StatusPoller",
]
