"""
Timer Scheduling

Timer-driven state machines (siren sweep, fake-call countdown) schedule
their ticks through a Scheduler so the clock can be swapped out.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    """Handle returned by Scheduler.call_later"""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Schedules one-shot callbacks"""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...

    def time(self) -> float:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.logger = logging.getLogger(__name__)
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        """
        Schedule callback after delay seconds

        Args:
            delay: Delay in seconds
            callback: Zero-argument callable run on the event loop

        Returns:
            asyncio.TimerHandle that can be cancelled
        """
        return self.loop.call_later(delay, self._run, callback)

    def time(self) -> float:
        return self.loop.time()

    def _run(self, callback: Callable[[], Any]) -> None:
        try:
            callback()
        except Exception as e:
            self.logger.error(f"Error in scheduled callback {callback!r}: {e}")
