"""
Fake Call Simulator

Countdown state machine (Armed(s), Disarmed). When the countdown expires it
plays a short beep and emits a "simulated incoming call" event, then
resets to the configured default delay.
"""

import logging
from typing import Callable, Dict, List, Optional

from safesignal.core.errors import AudioUnavailableError
from safesignal.core.scheduler import Scheduler
from safesignal.models.alert import FakeCallState
from .audio import AudioContext, get_audio_context


TICK_SECONDS = 1.0


class FakeCallSimulator:
    """Counts down and then pretends a call is coming in"""

    def __init__(self, scheduler: Scheduler, audio_context: Optional[AudioContext] = None,
                 config: Dict = None):
        self.logger = logging.getLogger(__name__)
        self.scheduler = scheduler
        self.audio_context = audio_context
        self.config = config or {}

        self.min_delay = int(self.config.get('min_delay', 3))
        self.max_delay = int(self.config.get('max_delay', 60))
        self.default_delay = self.clamp(int(self.config.get('default_delay', 10)))
        self.beep_waveform = self.config.get('beep_waveform', 'square')
        self.beep_frequency = float(self.config.get('beep_frequency', 880.0))
        self.beep_duration = float(self.config.get('beep_duration', 1.2))
        self.beep_gain = float(self.config.get('beep_gain', 0.1))

        self._state = FakeCallState(
            armed=False,
            seconds_remaining=self.default_delay,
            delay=self.default_delay
        )
        self._tick_handle = None
        self._beep = None
        self._beep_handle = None
        self._ring_listeners: List[Callable[[], None]] = []
        self._tick_listeners: List[Callable[[FakeCallState], None]] = []

    @property
    def state(self) -> FakeCallState:
        return self._state

    @property
    def is_armed(self) -> bool:
        return self._state.armed

    def clamp(self, seconds: int) -> int:
        """Clamp a delay into the allowed range"""
        return max(self.min_delay, min(self.max_delay, int(seconds)))

    def on_ring(self, callback: Callable[[], None]):
        """Register a listener for the simulated incoming call"""
        self._ring_listeners.append(callback)

    def on_tick(self, callback: Callable[[FakeCallState], None]):
        """Register a listener called after every state change"""
        self._tick_listeners.append(callback)

    def set_delay(self, seconds: int) -> int:
        """Set the delay used by the next arm; returns the clamped value"""
        self._state.delay = self.clamp(seconds)
        if not self._state.armed:
            self._state.seconds_remaining = self._state.delay
        return self._state.delay

    def arm(self, seconds: Optional[int] = None) -> int:
        """
        Disarmed -> Armed(n)

        Args:
            seconds: Countdown length; out-of-range values are clamped.
                Defaults to the current delay.

        Returns:
            The countdown length actually used
        """
        delay = self.clamp(self._state.delay if seconds is None else seconds)

        self._cancel_timer()
        self._state.delay = delay
        self._state.armed = True
        self._state.seconds_remaining = delay
        self._tick_handle = self.scheduler.call_later(TICK_SECONDS, self._tick)

        self.logger.info(f"Fake call armed for {delay}s")
        self._notify_tick()
        return delay

    def cancel(self) -> bool:
        """Armed -> Disarmed with no side effect; returns False if not armed"""
        if not self._state.armed:
            return False

        self._cancel_timer()
        self._state.armed = False
        self._state.seconds_remaining = self._state.delay
        self.logger.info("Fake call cancelled")
        self._notify_tick()
        return True

    def tick(self):
        """Advance the countdown by one second"""
        self._cancel_timer()
        self._tick()

    def close(self):
        """Disarm and silence any beep still playing"""
        self.cancel()
        self._silence_beep()

    def _tick(self):
        self._tick_handle = None
        if not self._state.armed:
            return

        if self._state.seconds_remaining > 1:
            self._state.seconds_remaining -= 1
            self._tick_handle = self.scheduler.call_later(TICK_SECONDS, self._tick)
            self._notify_tick()
            return

        self._complete()

    def _complete(self):
        self._state.armed = False
        self._state.delay = self.default_delay
        self._state.seconds_remaining = self.default_delay
        self.logger.info("Fake call ringing")

        self._play_beep()
        for callback in list(self._ring_listeners):
            try:
                callback()
            except Exception as e:
                self.logger.error(f"Error in fake call listener: {e}")
        self._notify_tick()

    def _play_beep(self):
        context = self.audio_context or get_audio_context()
        try:
            oscillator = context.create_oscillator(self.beep_waveform, self.beep_frequency, self.beep_gain)
        except (AudioUnavailableError, ValueError) as e:
            # The call still rings without its beep
            self.logger.warning(f"Fake call beep unavailable: {e}")
            return
        self._silence_beep()
        self._beep = oscillator
        self._beep_handle = self.scheduler.call_later(self.beep_duration, self._stop_beep)

    def _stop_beep(self):
        self._beep_handle = None
        oscillator, self._beep = self._beep, None
        if oscillator is not None:
            oscillator.stop()

    def _silence_beep(self):
        handle, self._beep_handle = self._beep_handle, None
        if handle is not None:
            handle.cancel()
        self._stop_beep()

    def _cancel_timer(self):
        handle, self._tick_handle = self._tick_handle, None
        if handle is not None:
            handle.cancel()

    def _notify_tick(self):
        for callback in list(self._tick_listeners):
            try:
                callback(self._state)
            except Exception as e:
                self.logger.error(f"Error in fake call tick listener: {e}")
