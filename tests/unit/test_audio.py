"""
Unit tests for the shared audio context
"""

import numpy as np
import pytest

from safesignal.core.errors import AudioUnavailableError
from safesignal.services.signal import audio as audio_module
from safesignal.services.signal.audio import AudioContext, render_waveform
from tests.base import AudioTestCase
from tests.mocks.signal_mocks import RecordingAudioOutput


class TestWaveforms:
    """Test waveform evaluation"""

    def test_shapes(self):
        phase = np.array([0.0, 0.25, 0.5, 0.75])

        np.testing.assert_allclose(render_waveform("sine", phase), [0.0, 1.0, 0.0, -1.0], atol=1e-12)
        np.testing.assert_allclose(render_waveform("square", phase), [1.0, 1.0, -1.0, -1.0])
        np.testing.assert_allclose(render_waveform("sawtooth", phase), [-1.0, -0.5, 0.0, 0.5])

    def test_unknown_waveform(self):
        with pytest.raises(ValueError):
            render_waveform("noise", np.zeros(1))


class TestAudioContext(AudioTestCase):
    """Test lazy open, mixing and teardown"""

    def test_opened_lazily(self):
        assert not self.audio.is_open
        assert self.outputs == []

        self.audio.create_oscillator("sine", 440, 0.1)

        assert self.audio.is_open
        assert len(self.outputs) == 1
        assert self.outputs[0].opened

    def test_closed_after_last_voice(self):
        first = self.audio.create_oscillator("sine", 440, 0.1)
        second = self.audio.create_oscillator("square", 880, 0.1)

        first.stop()
        assert self.audio.is_open

        second.stop()
        assert not self.audio.is_open
        assert self.outputs[0].closed

    def test_stop_is_idempotent(self):
        oscillator = self.audio.create_oscillator("sine", 440, 0.1)

        oscillator.stop()
        oscillator.stop()

        assert self.audio.active_voices == []

    def test_reopens_after_close(self):
        self.audio.create_oscillator("sine", 440, 0.1).stop()
        self.audio.create_oscillator("sine", 440, 0.1)

        assert len(self.outputs) == 2

    def test_mix_is_clipped(self):
        self.audio.create_oscillator("square", 100, 0.8)
        self.audio.create_oscillator("square", 100, 0.8)

        block = self.outputs[0].pull(64)

        assert block.shape == (64,)
        assert np.max(np.abs(block)) <= 1.0

    def test_phase_continuous_across_blocks(self):
        oscillator = self.audio.create_oscillator("sawtooth", 441, 1.0)

        first = oscillator.render(50, 44100)
        second = oscillator.render(50, 44100)
        whole = AudioContext(output_factory=RecordingAudioOutput).create_oscillator(
            "sawtooth", 441, 1.0
        ).render(100, 44100)

        np.testing.assert_allclose(np.concatenate([first, second]), whole, atol=1e-9)

    def test_open_failure(self):
        context = AudioContext(output_factory=lambda: RecordingAudioOutput(fail_open=True))

        with pytest.raises(AudioUnavailableError):
            context.create_oscillator("sine", 440, 0.1)

        assert not context.is_open
        assert context.active_voices == []

    def test_close_stops_everything(self):
        self.audio.create_oscillator("sine", 440, 0.1)
        self.audio.create_oscillator("sine", 660, 0.1)

        self.audio.close()

        assert self.audio.active_voices == []
        assert not self.audio.is_open

    def test_unknown_waveform_rejected_before_open(self):
        with pytest.raises(ValueError):
            self.audio.create_oscillator("noise", 440, 0.1)

        assert not self.audio.is_open


class TestGlobalAudioContext:
    """Test process-wide context lifecycle"""

    def teardown_method(self):
        audio_module.reset_audio_context()

    def test_singleton(self):
        first = audio_module.get_audio_context()

        assert audio_module.get_audio_context() is first

    def test_reset(self):
        first = audio_module.get_audio_context()

        audio_module.reset_audio_context()

        assert audio_module.get_audio_context() is not first
