"""
Emergency Signal Engine

Main service that coordinates all signal functionality:
- SOS press: compose the alert from the latest fix and dispatch it
- Live location tracking on/off
- Siren on/off and the fake-call countdown
- Contact and user-name bookkeeping through the persistence store
Every failure is turned into a user-facing notice here; nothing raised by
a component escapes an engine action.
"""

import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from safesignal.core.errors import (
    AudioUnavailableError,
    CapabilityUnavailableError,
    InvalidInputError,
    LocationPermissionError,
    LocationTimeoutError,
    LocationUnavailableError,
    PermissionDeniedError,
    StorageError,
)
from safesignal.core.logging import get_structured_logger
from safesignal.core.scheduler import AsyncioScheduler, Scheduler
from safesignal.core.storage import KeyValueStore
from safesignal.models.alert import (
    AlertContext,
    Contact,
    ContactLinks,
    Coordinate,
    DispatchChannel,
    DispatchOutcome,
    DispatchResult,
    EngineSnapshot,
    IncidentRecord,
    Notice,
    NoticeLevel,
)
from .audio import AudioContext, get_audio_context
from .composer import DEFAULT_MAP_SERVICE, compose
from .contacts import ContactBook, IncidentLog
from .dispatcher import SignalDispatcher
from .fake_call import FakeCallSimulator
from .location_tracker import LocationProvider, LocationTracker
from .siren import SirenPlayer


MAX_NOTICES = 20


class EmergencySignalEngine:
    """
    Facade the UI talks to; exposes read-only snapshots for re-rendering
    """

    def __init__(
        self,
        config: Dict = None,
        location_provider: Optional[LocationProvider] = None,
        store: Optional[KeyValueStore] = None,
        scheduler: Optional[Scheduler] = None,
        audio_context: Optional[AudioContext] = None,
        dispatcher: Optional[SignalDispatcher] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.events = get_structured_logger('engine')
        self.config = config or {}

        self.store = store or KeyValueStore(self.config.get('storage', {}).get('path'))
        self.scheduler = scheduler or AsyncioScheduler()
        self.audio_context = audio_context or get_audio_context(self.config.get('audio'))
        self.map_service = self.config.get('dispatch', {}).get('map_service', DEFAULT_MAP_SERVICE)

        self.tracker = LocationTracker(location_provider, self.config.get('location'))
        self.dispatcher = dispatcher or SignalDispatcher(config=self.config.get('dispatch'))
        self.siren = SirenPlayer(self.scheduler, self.audio_context, self.config.get('siren'))
        self.fake_call = FakeCallSimulator(self.scheduler, self.audio_context, self.config.get('fake_call'))
        self.contacts = ContactBook(self.store)
        self.incidents = IncidentLog(self.store)

        self.notices: Deque[Notice] = deque(maxlen=MAX_NOTICES)
        self._last_dispatch: Optional[DispatchResult] = None
        self._change_listeners: List[Callable[[EngineSnapshot], None]] = []
        self._notice_listeners: List[Callable[[Notice], None]] = []
        self._ring_listeners: List[Callable[[], None]] = []
        self._running = False

        self.tracker.subscribe(self._on_fix, self._on_tracking_error)
        self.fake_call.on_tick(lambda state: self._changed())
        self.fake_call.on_ring(self._on_ring)

    async def start(self):
        """Start the engine"""
        if self._running:
            return
        self._running = True
        self.logger.info("Emergency Signal Engine started")

    async def stop(self):
        """Stop the engine and release every live resource"""
        self.tracker.stop_continuous()
        self.siren.stop()
        self.fake_call.close()
        if self._running:
            self._running = False
            self.logger.info("Emergency Signal Engine stopped")
        self._changed()

    # Listeners

    def add_change_listener(self, callback: Callable[[EngineSnapshot], None]):
        self._change_listeners.append(callback)

    def add_notice_listener(self, callback: Callable[[Notice], None]):
        self._notice_listeners.append(callback)

    def add_ring_listener(self, callback: Callable[[], None]):
        """Called when the simulated incoming call starts ringing"""
        self._ring_listeners.append(callback)

    # Read-only state

    def snapshot(self) -> EngineSnapshot:
        """Current engine state for the UI"""
        fake_state = self.fake_call.state
        return EngineSnapshot(
            coordinate=self.tracker.last_fix,
            tracking_active=self.tracker.is_tracking,
            siren_on=self.siren.is_sounding,
            fake_call_armed=fake_state.armed,
            fake_call_seconds_remaining=fake_state.seconds_remaining,
            fake_call_delay=fake_state.delay,
            last_dispatch=self._last_dispatch,
            user_name=self.contacts.get_user_name(),
            contacts=tuple(self.contacts.list())
        )

    def build_context(self, note: str = "") -> AlertContext:
        """Assemble a fresh alert context from current state"""
        return AlertContext(
            coordinate=self.tracker.last_fix,
            user_name=self.contacts.get_user_name(),
            note=note or "",
            recipients=tuple(self.contacts.list())
        )

    def preview_text(self, note: str = "") -> str:
        return compose(self.build_context(note), self.map_service)

    def contact_links(self, note: str = "") -> List[ContactLinks]:
        """Per-contact SMS and chat links pre-filled with the alert"""
        context = self.build_context(note)
        return self.dispatcher.links_for(context.recipients, compose(context, self.map_service))

    # SOS

    async def press_sos(self, note: str = "") -> DispatchResult:
        """
        Compose the alert and send it through the best available channel

        Args:
            note: Optional free text appended to the alert

        Returns:
            The dispatch result
        """
        if self.tracker.last_fix is None:
            await self.locate(quiet=True)

        context = self.build_context(note)
        text = compose(context, self.map_service)
        result = await self.dispatcher.dispatch(text)
        self._last_dispatch = result

        self.events.info(
            "sos_dispatched",
            outcome=result.outcome.value,
            channel=result.channel.value,
            has_location=context.coordinate is not None,
            recipients=len(context.recipients)
        )

        try:
            self.incidents.record(IncidentRecord(
                note=context.note,
                text=text,
                outcome=result.outcome,
                coordinate=context.coordinate
            ))
        except StorageError as e:
            self.logger.error(f"Could not record incident: {e}")
            self._notice(NoticeLevel.WARNING, "Alert sent, but it could not be saved to the incident log.")

        if result.outcome == DispatchOutcome.SENT:
            if result.channel == DispatchChannel.NATIVE_SHARE:
                self._notice(NoticeLevel.INFO, "Alert shared.")
            else:
                self._notice(NoticeLevel.INFO, "Alert opened in your chat app.")
        elif result.outcome == DispatchOutcome.CANCELLED:
            self._notice(NoticeLevel.INFO, "Sharing cancelled.")
        else:
            self._notice(NoticeLevel.ERROR, f"Could not send alert: {result.error}")

        self._changed()
        return result

    async def copy_alert(self, note: str = "") -> bool:
        """Copy the composed alert to the clipboard"""
        copied = await self.dispatcher.copy_to_clipboard(self.preview_text(note))
        if copied:
            self._notice(NoticeLevel.INFO, "Alert copied to clipboard.")
        else:
            self._notice(NoticeLevel.ERROR, "Could not copy to clipboard.")
        return copied

    # Location

    async def locate(self, quiet: bool = False) -> Optional[Coordinate]:
        """
        Request a single fix

        Args:
            quiet: Only report failures, not success

        Returns:
            The new coordinate, or None if no fix could be obtained
        """
        try:
            coordinate = await self.tracker.request_once()
        except LocationUnavailableError as e:
            self._notice(NoticeLevel.WARNING, self._location_failure_text(e))
            return None

        if not quiet:
            self._notice(NoticeLevel.INFO, "Location updated.")
        return coordinate

    def start_tracking(self) -> bool:
        """Turn live tracking on; returns True if tracking is active"""
        try:
            self.tracker.start_continuous()
        except CapabilityUnavailableError as e:
            self.logger.warning(f"Live tracking unavailable: {e}")
            self._notice(NoticeLevel.ERROR, "Live location is not supported on this device.")
            return False
        except Exception as e:
            self.logger.error(f"Could not start live tracking: {e}")
            self._notice(NoticeLevel.ERROR, "Could not start live location.")
            return False

        self.events.info("tracking_started")
        self._notice(NoticeLevel.INFO, "Live location on.")
        self._changed()
        return True

    def stop_tracking(self):
        was_tracking = self.tracker.is_tracking
        self.tracker.stop_continuous()
        if was_tracking:
            self.events.info("tracking_stopped")
            self._notice(NoticeLevel.INFO, "Live location off.")
            self._changed()

    def toggle_tracking(self) -> bool:
        if self.tracker.is_tracking:
            self.stop_tracking()
            return False
        return self.start_tracking()

    # Siren

    def start_siren(self) -> bool:
        """Turn the siren on; returns True if it is sounding"""
        try:
            self.siren.start()
        except AudioUnavailableError as e:
            self.logger.error(f"Siren unavailable: {e}")
            self._notice(NoticeLevel.ERROR, "Siren unavailable: audio output could not be opened.")
            return False
        except Exception as e:
            self.logger.error(f"Could not start siren: {e}")
            self._notice(NoticeLevel.ERROR, "Could not start the siren.")
            return False

        self.events.info("siren_started")
        self._changed()
        return True

    def stop_siren(self):
        if self.siren.is_sounding:
            self.events.info("siren_stopped")
        self.siren.stop()
        self._changed()

    def toggle_siren(self) -> bool:
        if self.siren.is_sounding:
            self.stop_siren()
            return False
        return self.start_siren()

    # Fake call

    def start_fake_call(self, seconds: Optional[int] = None) -> int:
        """Arm the fake call; returns the clamped countdown"""
        delay = self.fake_call.arm(seconds)
        self._notice(NoticeLevel.INFO, f"Fake call in {delay} seconds.")
        return delay

    def cancel_fake_call(self) -> bool:
        cancelled = self.fake_call.cancel()
        if cancelled:
            self._notice(NoticeLevel.INFO, "Fake call cancelled.")
        return cancelled

    def set_fake_call_delay(self, seconds: int) -> int:
        delay = self.fake_call.set_delay(seconds)
        self._changed()
        return delay

    # Contacts

    def add_contact(self, display_name: str, phone: str) -> Optional[Contact]:
        """Add a contact; invalid input is rejected with a notice"""
        try:
            contact = self.contacts.add(display_name, phone)
        except InvalidInputError as e:
            self._notice(NoticeLevel.ERROR, f"Contact not added: {e}")
            return None
        except StorageError as e:
            self._notice(NoticeLevel.ERROR, f"Contact not saved: {e}")
            return None

        self._notice(NoticeLevel.INFO, f"Added {contact.label}.")
        self._changed()
        return contact

    def remove_contact(self, index: int) -> Optional[Contact]:
        try:
            contact = self.contacts.remove(index)
        except (InvalidInputError, StorageError) as e:
            self._notice(NoticeLevel.ERROR, f"Contact not removed: {e}")
            return None

        self._notice(NoticeLevel.INFO, f"Removed {contact.label}.")
        self._changed()
        return contact

    def set_user_name(self, name: Optional[str]) -> bool:
        try:
            self.contacts.set_user_name(name)
        except StorageError as e:
            self._notice(NoticeLevel.ERROR, f"Name not saved: {e}")
            return False
        self._changed()
        return True

    # Internal

    def _location_failure_text(self, error: LocationUnavailableError) -> str:
        if isinstance(error, LocationPermissionError):
            return "Location permission denied."
        if isinstance(error, LocationTimeoutError):
            return "Location request timed out."
        return "Location unavailable."

    def _on_fix(self, coordinate: Coordinate):
        self._changed()

    def _on_tracking_error(self, error: Exception):
        # The session stays up; the next update may succeed
        if isinstance(error, PermissionDeniedError):
            self._notice(NoticeLevel.WARNING, "Location permission denied.")
        else:
            self._notice(NoticeLevel.WARNING, "Live location update failed.")

    def _on_ring(self):
        self.events.info("fake_call_ringing")
        self._notice(NoticeLevel.INFO, "Incoming call...")
        for callback in list(self._ring_listeners):
            try:
                callback()
            except Exception as e:
                self.logger.error(f"Error in ring listener: {e}")

    def _notice(self, level: NoticeLevel, message: str):
        notice = Notice(level=level, message=message)
        self.notices.append(notice)
        for callback in list(self._notice_listeners):
            try:
                callback(notice)
            except Exception as e:
                self.logger.error(f"Error in notice listener: {e}")

    def _changed(self):
        if not self._change_listeners:
            return
        snapshot = self.snapshot()
        for callback in list(self._change_listeners):
            try:
                callback(snapshot)
            except Exception as e:
                self.logger.error(f"Error in change listener: {e}")
