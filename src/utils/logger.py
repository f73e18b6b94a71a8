"""Logging utilities for observability."""

import logging
import sys
from collections import deque
from datetime import datetime
from typing import Optional

# Global logger instance
_logger: Optional[logging.Logger] = None

LOGGER_NAME = "deploy_monitor"

# Events kept in memory per project; older ones are dropped
MAX_EVENTS = 500


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with colors."""
        color = self.COLORS.get(record.levelname, self.RESET)
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up logging configuration.

    Logs go to stderr so they never interleave with log chunks written
    to stdout by a terminal sink.
    """
    global _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_format = ColoredFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        file_format = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger


class ProjectLogger:
    """Logger for tracking one project's monitoring activity."""

    def __init__(self, project_id: str, max_events: int = MAX_EVENTS):
        """Initialize project logger."""
        self.project_id = project_id
        self.logger = get_logger()
        self.events: deque[dict] = deque(maxlen=max_events)

    def log_event(
        self,
        event_type: str,
        deployment_id: Optional[str] = None,
        message: str = "",
        metadata: Optional[dict] = None,
        level: int = logging.INFO,
    ) -> None:
        """Log a monitoring event."""
        event = {
            "timestamp": datetime.now().isoformat(),
            "project_id": self.project_id,
            "event_type": event_type,
            "deployment_id": deployment_id,
            "message": message,
            "metadata": metadata or {},
        }
        self.events.append(event)
        self.logger.log(level, f"[{self.project_id}] {event_type}: {message}")

    def log_selection(self, deployment_id: str, status: str, replayed_chars: int) -> None:
        """Log a change of the active deployment."""
        self.log_event(
            "deployment_selected",
            deployment_id=deployment_id,
            message=f"{deployment_id} ({status}), replayed {replayed_chars} chars",
        )

    def log_stream_opened(self, deployment_id: str, url: str) -> None:
        """Log a log stream being opened."""
        self.log_event(
            "stream_opened",
            deployment_id=deployment_id,
            message=url,
            level=logging.DEBUG,
        )

    def log_stream_closed(self, deployment_id: str, reconcile: bool) -> None:
        """Log a remote close of the log stream."""
        action = "refreshing snapshot" if reconcile else "no refresh needed"
        self.log_event(
            "stream_closed",
            deployment_id=deployment_id,
            message=f"Log stream for {deployment_id} closed, {action}",
        )

    def log_refresh_failed(self, error: Exception) -> None:
        """Log a failed snapshot fetch."""
        self.log_event(
            "refresh_failed",
            message=str(error),
            level=logging.WARNING,
        )

    def log_action(self, action: str, success: bool, detail: str = "") -> None:
        """Log a redeploy/stop request outcome."""
        outcome = "accepted" if success else "failed"
        self.log_event(
            f"{action}_{outcome}",
            message=detail or f"{action.title()} {outcome}",
            level=logging.INFO if success else logging.ERROR,
        )

    def get_events(self) -> list[dict]:
        """Get all logged events."""
        return list(self.events)
