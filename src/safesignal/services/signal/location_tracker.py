"""
Location Tracking

Owns one-shot and continuous position acquisition:
- Single best-effort fixes bounded by a short timeout
- At most one continuous session, cancelled synchronously on stop
- Last-known-good caching; failures never clear the cached fix
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from safesignal.core.errors import (
    GeolocationUnsupportedError,
    LocationPermissionError,
    LocationTimeoutError,
    LocationUnavailableError,
    PermissionDeniedError,
)
from safesignal.models.alert import Coordinate, TrackingSession


UpdateCallback = Callable[[Coordinate], Any]
ErrorCallback = Callable[[Exception], Any]


class LocationProvider(Protocol):
    """Host positioning capability"""

    async def request_once(self) -> Coordinate:
        ...

    def watch(self, on_update: UpdateCallback, on_error: ErrorCallback,
              max_age: float, timeout: float) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class PollingSubscription:
    """Handle for one polling loop; stop() is final"""

    def __init__(self):
        self.task: Optional[asyncio.Task] = None
        self.stopped = False

    @property
    def done(self) -> bool:
        return self.task is None or self.task.done()

    def stop(self) -> None:
        self.stopped = True
        if self.task is not None and not self.task.done():
            self.task.cancel()


class PollingLocationProvider:
    """
    Location provider that polls an async fix reader

    The reader is any coroutine function returning a Coordinate, such as a
    wrapper around a GNSS daemon or an OS location API.
    """

    def __init__(self, read_fix: Callable[[], Awaitable[Coordinate]]):
        self.logger = logging.getLogger(__name__)
        self.read_fix = read_fix

    async def request_once(self) -> Coordinate:
        return await self.read_fix()

    def watch(self, on_update: UpdateCallback, on_error: ErrorCallback,
              max_age: float = 2.0, timeout: float = 10.0) -> PollingSubscription:
        """
        Start polling for position updates

        Args:
            on_update: Called with each new Coordinate
            on_error: Called with each failed read; polling continues
            max_age: Seconds between polls
            timeout: Bound on each individual read

        Returns:
            The subscription handle to pass to cancel()
        """
        subscription = PollingSubscription()
        subscription.task = asyncio.get_running_loop().create_task(
            self._poll_loop(subscription, on_update, on_error, max_age, timeout)
        )
        return subscription

    def cancel(self, handle: PollingSubscription) -> None:
        if handle is not None:
            handle.stop()

    async def _poll_loop(self, subscription: PollingSubscription, on_update: UpdateCallback,
                         on_error: ErrorCallback, max_age: float, timeout: float):
        # wait_for can swallow a cancel that races a finished read, so the
        # stop flag is checked after every await
        while not subscription.stopped:
            try:
                coordinate = await asyncio.wait_for(self.read_fix(), timeout)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError:
                error = LocationTimeoutError(f"No position within {timeout}s")
                coordinate = None
            except Exception as e:
                error = e
                coordinate = None
            else:
                error = None

            if subscription.stopped:
                break
            if error is not None:
                on_error(error)
            else:
                on_update(coordinate)

            await asyncio.sleep(max_age)

        self.logger.debug("Position polling stopped")


class LocationTracker:
    """Tracks the user's position and publishes every new fix"""

    def __init__(self, provider: Optional[LocationProvider] = None, config: Dict = None):
        self.logger = logging.getLogger(__name__)
        self.provider = provider
        self.config = config or {}

        self.once_timeout = float(self.config.get('once_timeout', 5.0))
        self.watch_max_age = float(self.config.get('watch_max_age', 2.0))
        self.watch_timeout = float(self.config.get('watch_timeout', 10.0))

        self._last_fix: Optional[Coordinate] = None
        self._session: Optional[TrackingSession] = None
        self._update_subscribers: List[UpdateCallback] = []
        self._error_subscribers: List[ErrorCallback] = []

    @property
    def last_fix(self) -> Optional[Coordinate]:
        return self._last_fix

    @property
    def session(self) -> Optional[TrackingSession]:
        return self._session

    @property
    def is_tracking(self) -> bool:
        return self._session is not None and self._session.active

    def subscribe(self, on_update: UpdateCallback, on_error: Optional[ErrorCallback] = None):
        """Register callbacks for fixes and tracking errors"""
        self._update_subscribers.append(on_update)
        if on_error is not None:
            self._error_subscribers.append(on_error)

    def unsubscribe(self, callback: Callable):
        if callback in self._update_subscribers:
            self._update_subscribers.remove(callback)
        if callback in self._error_subscribers:
            self._error_subscribers.remove(callback)

    async def request_once(self) -> Coordinate:
        """
        Get a single best-effort position fix

        Returns:
            The new Coordinate, which also replaces the cached fix

        Raises:
            LocationPermissionError: Access refused
            LocationTimeoutError: No fix within the configured bound
            LocationUnavailableError: Provider missing or failed
        """
        if self.provider is None:
            raise LocationUnavailableError("Location capability is not available")

        try:
            coordinate = await asyncio.wait_for(self.provider.request_once(), self.once_timeout)
        except asyncio.TimeoutError as e:
            self.logger.warning(f"Position fix timed out after {self.once_timeout}s")
            raise LocationTimeoutError(f"No position within {self.once_timeout}s") from e
        except LocationUnavailableError:
            raise
        except PermissionDeniedError as e:
            self.logger.warning(f"Location permission denied: {e}")
            raise LocationPermissionError(str(e) or "Location permission denied") from e
        except Exception as e:
            self.logger.warning(f"Position fix failed: {e}")
            raise LocationUnavailableError(str(e) or "Location unavailable") from e

        self._accept(coordinate)
        return coordinate

    def start_continuous(self) -> TrackingSession:
        """
        Begin recurring position updates

        Returns:
            The active TrackingSession (the existing one if already tracking)

        Raises:
            GeolocationUnsupportedError: If the provider cannot watch
        """
        if self.is_tracking:
            return self._session

        if self.provider is None or not callable(getattr(self.provider, 'watch', None)):
            raise GeolocationUnsupportedError("Continuous location is not supported")

        handle = self.provider.watch(
            self._handle_update,
            self._handle_error,
            max_age=self.watch_max_age,
            timeout=self.watch_timeout
        )
        self._session = TrackingSession(active=True, handle=handle)
        self.logger.info("Live location tracking started")
        return self._session

    def stop_continuous(self, session: Optional[TrackingSession] = None) -> None:
        """Cancel the live session; safe to call when nothing is running"""
        current = self._session
        if current is None or (session is not None and session is not current):
            if session is not None:
                session.active = False
            return

        self._session = None
        current.active = False
        handle, current.handle = current.handle, None
        if handle is not None and self.provider is not None:
            self.provider.cancel(handle)
        self.logger.info("Live location tracking stopped")

    def _handle_update(self, coordinate: Coordinate):
        if self._session is None:
            # Late delivery after stop
            return
        try:
            self._accept(coordinate)
        except Exception as e:
            self.logger.error(f"Error handling position update: {e}")

    def _handle_error(self, error: Exception):
        self.logger.warning(f"Position update failed: {error}")
        for callback in list(self._error_subscribers):
            try:
                callback(error)
            except Exception as e:
                self.logger.error(f"Error in location error subscriber: {e}")

    def _accept(self, coordinate: Coordinate):
        """Replace the cached fix and publish it"""
        previous = self._last_fix
        if (previous is not None and previous.timestamp is not None
                and coordinate.timestamp is not None
                and coordinate.timestamp < previous.timestamp):
            self.logger.debug("Dropping out-of-order position update")
            return

        self._last_fix = coordinate
        for callback in list(self._update_subscribers):
            try:
                callback(coordinate)
            except Exception as e:
                self.logger.error(f"Error in location subscriber: {e}")
