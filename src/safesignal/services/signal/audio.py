"""
Shared Audio Output

A single lazily opened output context that the siren and the fake-call
beep draw oscillators from. Live oscillators are mixed into one stream;
the stream is closed again when the last oscillator stops.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol

import numpy as np

from safesignal.core.errors import AudioUnavailableError
from safesignal.models.alert import WAVEFORMS


RenderCallback = Callable[[int], np.ndarray]


def render_waveform(waveform: str, phase: np.ndarray) -> np.ndarray:
    """
    Evaluate a unit-amplitude waveform

    Args:
        waveform: One of WAVEFORMS
        phase: Phase in cycles (1.0 == one full period)

    Returns:
        Samples in [-1, 1]
    """
    frac = np.mod(phase, 1.0)
    if waveform == "sine":
        return np.sin(2 * np.pi * frac)
    if waveform == "square":
        return np.where(frac < 0.5, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * frac - 1.0
    raise ValueError(f"Unknown waveform: {waveform}")


class Oscillator:
    """A single tone generator attached to an AudioContext"""

    def __init__(self, context: 'AudioContext', waveform: str, frequency: float, gain: float):
        if waveform not in WAVEFORMS:
            raise ValueError(f"Unknown waveform: {waveform}")
        self.context = context
        self.waveform = waveform
        self.frequency = float(frequency)
        self.gain = float(gain)
        self.phase = 0.0
        self.stopped = False

    def render(self, frames: int, sample_rate: int) -> np.ndarray:
        """Render the next block, keeping phase continuous across blocks"""
        step = self.frequency / sample_rate
        phases = self.phase + step * np.arange(frames)
        self.phase = float((self.phase + step * frames) % 1.0)
        return self.gain * render_waveform(self.waveform, phases)

    def stop(self):
        """Silence this oscillator; safe to call more than once"""
        if self.stopped:
            return
        self.stopped = True
        self.context.release(self)


class AudioOutput(Protocol):
    """Device the context streams mixed samples to"""

    def open(self, render: RenderCallback) -> None:
        ...

    def close(self) -> None:
        ...


class SoundDeviceOutput:
    """Mono output stream through PortAudio via sounddevice"""

    def __init__(self, sample_rate: int = 44100, block_size: int = 512):
        self.logger = logging.getLogger(__name__)
        self.sample_rate = sample_rate
        self.block_size = block_size
        self._stream = None

    def open(self, render: RenderCallback) -> None:
        try:
            import sounddevice as sd
        except OSError as e:
            # PortAudio library missing on the host
            raise AudioUnavailableError(f"Audio backend unavailable: {e}") from e

        def callback(outdata, frames, time_info, status):
            if status:
                self.logger.debug(f"Audio stream status: {status}")
            outdata[:, 0] = render(frames)

        try:
            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                channels=1,
                dtype='float32',
                callback=callback
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            raise AudioUnavailableError(f"Could not open audio output: {e}") from e

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            self.logger.warning(f"Error closing audio stream: {e}")


class AudioContext:
    """
    Process-wide audio output shared by the siren and the fake call

    The output device is opened on the first oscillator and closed when the
    last live oscillator stops.
    """

    def __init__(self, output_factory: Optional[Callable[[], AudioOutput]] = None,
                 config: Dict = None):
        self.logger = logging.getLogger(__name__)
        self.config = config or {}
        self.sample_rate = int(self.config.get('sample_rate', 44100))
        self.block_size = int(self.config.get('block_size', 512))
        self.output_factory = output_factory or (
            lambda: SoundDeviceOutput(self.sample_rate, self.block_size)
        )

        self._output: Optional[AudioOutput] = None
        self._voices: List[Oscillator] = []
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._output is not None

    @property
    def active_voices(self) -> List[Oscillator]:
        with self._lock:
            return list(self._voices)

    def create_oscillator(self, waveform: str, frequency: float, gain: float) -> Oscillator:
        """
        Start a new oscillator, opening the output if needed

        Raises:
            AudioUnavailableError: If the output device cannot be opened
        """
        oscillator = Oscillator(self, waveform, frequency, gain)

        if self._output is None:
            output = self.output_factory()
            output.open(self.render)
            self._output = output
            self.logger.debug("Audio output opened")

        with self._lock:
            self._voices.append(oscillator)
        return oscillator

    def render(self, frames: int) -> np.ndarray:
        """Mix all live oscillators into one block"""
        with self._lock:
            voices = list(self._voices)

        mixed = np.zeros(frames, dtype=np.float32)
        for voice in voices:
            mixed += voice.render(frames, self.sample_rate).astype(np.float32)
        # Overlapping voices are clipped rather than rejected
        return np.clip(mixed, -1.0, 1.0)

    def release(self, oscillator: Oscillator):
        with self._lock:
            if oscillator in self._voices:
                self._voices.remove(oscillator)
            remaining = len(self._voices)

        if remaining == 0 and self._output is not None:
            output, self._output = self._output, None
            output.close()
            self.logger.debug("Audio output closed")

    def close(self):
        """Stop every oscillator and close the output"""
        for voice in self.active_voices:
            voice.stop()
        if self._output is not None:
            output, self._output = self._output, None
            output.close()


# Global audio context instance
_audio_context: Optional[AudioContext] = None


def get_audio_context(config: Dict = None) -> AudioContext:
    """Get the process-wide audio context, creating it on first use"""
    global _audio_context
    if _audio_context is None:
        _audio_context = AudioContext(config=config)
    return _audio_context


def reset_audio_context():
    """Close and discard the process-wide audio context"""
    global _audio_context
    if _audio_context is not None:
        _audio_context.close()
        _audio_context = None
