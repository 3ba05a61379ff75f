"""
Mock objects for host capabilities used by the signal engine.
"""
import heapq
import itertools
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from safesignal.core.errors import ShareCancelledError
from safesignal.models.alert import Coordinate


class ManualTimerHandle:
    """Timer handle for ManualScheduler."""

    def __init__(self, when: float, callback: Callable[[], Any]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test advances it."""

    def __init__(self):
        self.now = 0.0
        self._queue: List = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ManualTimerHandle:
        handle = ManualTimerHandle(self.now + delay, callback)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    def time(self) -> float:
        return self.now

    @property
    def pending(self) -> List[ManualTimerHandle]:
        return [entry[2] for entry in self._queue if not entry[2].cancelled]

    def advance(self, seconds: float):
        """Run every callback due within the next `seconds`."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            self.now = max(self.now, when)
            if not handle.cancelled:
                handle.callback()
        self.now = target


class MockLocationProvider:
    """Location provider driven by the test."""

    def __init__(self, fix: Optional[Coordinate] = None, error: Optional[Exception] = None,
                 supports_watch: bool = True):
        self.fix = fix
        self.error = error
        self.request_count = 0
        self.watch_calls: List[Dict[str, Any]] = []
        self.cancelled_handles: List[Any] = []
        self._handles = itertools.count(1)
        self._watchers: Dict[int, tuple] = {}
        if not supports_watch:
            self.watch = None

    async def request_once(self) -> Coordinate:
        self.request_count += 1
        if self.error is not None:
            raise self.error
        return self.fix

    def watch(self, on_update, on_error, max_age: float = 2.0, timeout: float = 10.0) -> int:
        handle = next(self._handles)
        self._watchers[handle] = (on_update, on_error)
        self.watch_calls.append({'max_age': max_age, 'timeout': timeout, 'handle': handle})
        return handle

    def cancel(self, handle: int) -> None:
        self.cancelled_handles.append(handle)
        self._watchers.pop(handle, None)

    @property
    def active_watchers(self) -> int:
        return len(self._watchers)

    def emit(self, coordinate: Coordinate):
        for on_update, _ in list(self._watchers.values()):
            on_update(coordinate)

    def fail(self, error: Exception):
        for _, on_error in list(self._watchers.values()):
            on_error(error)


class RecordingAudioOutput:
    """Audio output that records open/close and renders on demand."""

    instances: List['RecordingAudioOutput'] = []

    def __init__(self, fail_open: bool = False):
        self.fail_open = fail_open
        self.render: Optional[Callable[[int], np.ndarray]] = None
        self.opened = False
        self.closed = False
        RecordingAudioOutput.instances.append(self)

    def open(self, render):
        if self.fail_open:
            from safesignal.core.errors import AudioUnavailableError
            raise AudioUnavailableError("no audio device")
        self.render = render
        self.opened = True

    def close(self):
        self.closed = True

    def pull(self, frames: int = 256) -> np.ndarray:
        return self.render(frames)


class MockShare:
    """Native share sheet stand-in."""

    def __init__(self, available: bool = True, cancel: bool = False,
                 error: Optional[Exception] = None):
        self.available = available
        self.cancel = cancel
        self.error = error
        self.calls: List[Dict[str, str]] = []

    def is_available(self) -> bool:
        return self.available

    async def share(self, title: str, text: str) -> None:
        self.calls.append({'title': title, 'text': text})
        if self.cancel:
            raise ShareCancelledError("dismissed")
        if self.error is not None:
            raise self.error


class LinkRecorder:
    """Link opener that records URLs."""

    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.urls: List[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.result


class ClipboardRecorder:
    """Clipboard writer that records copied text."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.copied: List[str] = []

    def __call__(self, text: str) -> None:
        if self.error is not None:
            raise self.error
        self.copied.append(text)
