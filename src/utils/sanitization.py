"""Log text sanitization for the display boundary."""

import re
from typing import Union

from src.utils.logger import get_logger

logger = get_logger()

# Terminal surfaces expect CR LF; a bare LF only moves the cursor down.
TERMINAL_LINE_ENDING = "\r\n"

_NEWLINE_PATTERN = re.compile(r"\r?\n")


def normalize_line_endings(text: str, line_ending: str = TERMINAL_LINE_ENDING) -> str:
    """Rewrite every line break in ``text`` to ``line_ending``.

    Existing CR LF pairs are left as a single break and lone carriage
    returns (progress bars, spinners) pass through untouched. Applied to
    chunks on their way to a log sink only; stored buffers keep the raw
    text.

    Args:
        text: Raw log text.
        line_ending: Line terminator of the display surface.

    Returns:
        Text with normalized line breaks.
    """
    if not text:
        return text
    return _NEWLINE_PATTERN.sub(line_ending, text)


def decode_frame(frame: Union[str, bytes, bytearray, memoryview]) -> str:
    """Decode a stream frame to text.

    Build output is not guaranteed to be valid UTF-8, so undecodable bytes
    are replaced instead of failing the stream.
    """
    if isinstance(frame, str):
        return frame
    data = bytes(frame)
    text = data.decode("utf-8", errors="replace")
    if "\ufffd" in text and b"\xef\xbf\xbd" not in data:
        logger.debug(f"Replaced undecodable bytes in a {len(data)}-byte log frame")
    return text
