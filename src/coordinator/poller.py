"""Periodic status polling while a deployment is building."""

import asyncio
from typing import Callable, Optional

from src.utils.logger import get_logger

logger = get_logger()

# Reference polling period (seconds)
DEFAULT_POLL_INTERVAL = 2.0


class StatusPoller:
    """A single repeating timer that fires only while a build is running.

    The timer keeps ticking for the poller's whole lifetime; ticks where
    ``should_poll`` returns False do no work.
    """

    def __init__(
        self,
        on_tick: Callable[[], None],
        should_poll: Callable[[], bool],
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Initialize the poller.

        Args:
            on_tick: Work to run on a tick (the coordinator's refresh trigger).
            should_poll: Predicate checked at every tick.
            interval: Seconds between ticks.
        """
        self.on_tick = on_tick
        self.should_poll = should_poll
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    # ── lifecycle ─────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        """Whether the timer is armed."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Arm the timer, clearing any previously armed one first."""
        self.stop()
        self._task = asyncio.create_task(self._loop(), name="status-poller")

    def stop(self) -> None:
        """Cancel the timer. Stopping an idle poller is a no-op."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    # ── internals ─────────────────────────────────────────────

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def tick(self) -> bool:
        """Run one tick. Returns True when work was triggered."""
        if not self.should_poll():
            return False
        try:
            self.on_tick()
        except Exception as e:
            logger.error(f"Status poll tick failed: {e}")
        return True
