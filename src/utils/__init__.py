"""Utility modules for the deployment monitor."""

from src.utils.config import Settings, get_settings, to_websocket_url
from src.utils.logger import ProjectLogger, get_logger, setup_logging
from src.utils.sanitization import (
    TERMINAL_LINE_ENDING,
    decode_frame,
    normalize_line_endings,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "to_websocket_url",
    # Logging
    "ProjectLogger",
    "get_logger",
    "setup_logging",
    # Sanitization
    "TERMINAL_LINE_ENDING",
    "decode_frame",
    "normalize_line_endings",
]
