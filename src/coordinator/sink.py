"""Log sink contract driven by the project state coordinator."""

from typing import Callable, Optional, Protocol, runtime_checkable


@runtime_checkable
class LogSink(Protocol):
    """Display surface for the active deployment's console output.

    The coordinator calls ``on_clear`` before the first chunk of every
    selection episode and delivers chunks in receipt order, one call at a
    time from the event loop.
    """

    def on_chunk(self, text: str) -> None:
        """Append normalized text to the visible log."""
        ...

    def on_clear(self) -> None:
        """Reset the visible log to empty."""
        ...


class CallbackLogSink:
    """Adapts two optional callables to the ``LogSink`` contract."""

    def __init__(
        self,
        on_chunk: Optional[Callable[[str], None]] = None,
        on_clear: Optional[Callable[[], None]] = None,
    ):
        self._on_chunk = on_chunk
        self._on_clear = on_clear

    def on_chunk(self, text: str) -> None:
        if self._on_chunk is not None:
            self._on_chunk(text)

    def on_clear(self) -> None:
        if self._on_clear is not None:
            self._on_clear()
