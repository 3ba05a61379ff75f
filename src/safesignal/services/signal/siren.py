"""
Siren Player

Two-state machine (Idle, Sounding) driving a swept sawtooth tone:
frequency = base + amplitude * |sin(phase)|, with the phase stepped on
every scheduler tick while the siren is sounding.
"""

import logging
import math
from enum import Enum
from typing import Dict, Optional

from safesignal.core.scheduler import Scheduler
from safesignal.models.alert import SirenState
from .audio import AudioContext, get_audio_context


class SirenStatus(Enum):
    IDLE = "idle"
    SOUNDING = "sounding"


class SirenPlayer:
    """Audible siren with a continuous frequency sweep"""

    def __init__(self, scheduler: Scheduler, audio_context: Optional[AudioContext] = None,
                 config: Dict = None):
        self.logger = logging.getLogger(__name__)
        self.scheduler = scheduler
        self.audio_context = audio_context
        self.config = config or {}

        self.waveform = self.config.get('waveform', 'sawtooth')
        self.base_frequency = float(self.config.get('base_frequency', 600.0))
        self.sweep_amplitude = float(self.config.get('sweep_amplitude', 400.0))
        self.phase_step = float(self.config.get('phase_step', 0.25))
        self.tick_interval = float(self.config.get('tick_interval', 0.08))
        self.gain = float(self.config.get('gain', 0.05))

        self._state = SirenState()

    @property
    def state(self) -> SirenState:
        return self._state

    @property
    def status(self) -> SirenStatus:
        return SirenStatus.SOUNDING if self._state.on else SirenStatus.IDLE

    @property
    def is_sounding(self) -> bool:
        return self._state.on

    def current_frequency(self) -> float:
        return self.base_frequency + self.sweep_amplitude * abs(math.sin(self._state.phase_accumulator))

    def start(self):
        """
        Idle -> Sounding; no-op if already sounding

        Raises:
            AudioUnavailableError: If the audio output cannot be opened
        """
        if self._state.on:
            return

        context = self.audio_context or get_audio_context()
        oscillator = context.create_oscillator(self.waveform, self.current_frequency(), self.gain)

        self._state.on = True
        self._state.oscillator = oscillator
        self._state.sweep_handle = self.scheduler.call_later(self.tick_interval, self._sweep)
        self.logger.info("Siren started")

    def stop(self):
        """Sounding -> Idle; releases the oscillator and sweep timer immediately"""
        was_on = self._state.on
        self._state.on = False

        handle, self._state.sweep_handle = self._state.sweep_handle, None
        if handle is not None:
            handle.cancel()

        oscillator, self._state.oscillator = self._state.oscillator, None
        if oscillator is not None:
            oscillator.stop()

        if was_on:
            self.logger.info("Siren stopped")

    def toggle(self) -> bool:
        """Flip the siren; returns True if it is now sounding"""
        if self._state.on:
            self.stop()
        else:
            self.start()
        return self._state.on

    def _sweep(self):
        # Read live state: a tick that fires after stop must not advance
        if not self._state.on or self._state.oscillator is None:
            return

        self._state.phase_accumulator += self.phase_step
        self._state.oscillator.frequency = self.current_frequency()
        self._state.sweep_handle = self.scheduler.call_later(self.tick_interval, self._sweep)
