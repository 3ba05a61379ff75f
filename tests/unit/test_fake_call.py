"""
Unit tests for the fake call countdown
"""

import pytest

from safesignal.services.signal.audio import AudioContext
from safesignal.services.signal.fake_call import FakeCallSimulator
from tests.base import AudioTestCase
from tests.mocks.signal_mocks import RecordingAudioOutput


class TestFakeCallSimulator(AudioTestCase):
    """Test Armed/Disarmed transitions"""

    def setup_method(self):
        super().setup_method()
        self.simulator = FakeCallSimulator(self.scheduler, self.audio, {'default_delay': 10})
        self.rings = []
        self.simulator.on_ring(lambda: self.rings.append(self.scheduler.time()))

    @pytest.mark.parametrize("requested,expected", [
        (2, 3), (-5, 3), (3, 3), (30, 30), (60, 60), (100, 60)
    ])
    def test_arm_clamps(self, requested, expected):
        assert self.simulator.arm(requested) == expected
        assert self.simulator.state.seconds_remaining == expected

    def test_arm_defaults_to_configured_delay(self):
        assert self.simulator.arm() == 10

    def test_countdown(self):
        self.simulator.arm(5)

        self.scheduler.advance(1)
        assert self.simulator.state.seconds_remaining == 4
        assert self.simulator.is_armed

        self.scheduler.advance(3)
        assert self.simulator.state.seconds_remaining == 1
        assert self.rings == []

    def test_completion_after_three_ticks(self):
        beeps = []
        original = self.audio.create_oscillator

        def tracking_create(*args):
            oscillator = original(*args)
            beeps.append(oscillator)
            return oscillator

        self.audio.create_oscillator = tracking_create
        self.simulator.set_delay(7)
        self.simulator.arm(3)

        self.simulator.tick()
        self.simulator.tick()
        assert self.simulator.is_armed
        self.simulator.tick()

        assert not self.simulator.is_armed
        assert len(self.rings) == 1
        assert len(beeps) == 1
        assert beeps[0].waveform == "square"
        assert beeps[0].frequency == 880.0
        assert self.simulator.state.delay == 10
        assert self.simulator.state.seconds_remaining == 10

    def test_completion_via_scheduler(self):
        self.simulator.arm(3)

        self.scheduler.advance(3)

        assert not self.simulator.is_armed
        assert self.rings == [3.0]
        assert len(self.audio.active_voices) == 1

    def test_beep_stops_after_duration(self):
        self.simulator.arm(3)
        self.scheduler.advance(3)

        self.scheduler.advance(1.1)
        assert len(self.audio.active_voices) == 1

        self.scheduler.advance(0.2)
        assert self.audio.active_voices == []
        assert not self.audio.is_open

    def test_no_further_ticks_after_completion(self):
        self.simulator.arm(3)
        self.scheduler.advance(3)

        self.scheduler.advance(30)

        assert len(self.rings) == 1
        assert self.scheduler.pending == []

    def test_cancel_releases_timer(self):
        self.simulator.arm(5)
        self.scheduler.advance(2)

        assert self.simulator.cancel() is True

        assert not self.simulator.is_armed
        assert self.scheduler.pending == []
        self.scheduler.advance(10)
        assert self.rings == []
        assert self.audio.active_voices == []

    def test_cancel_when_disarmed(self):
        assert self.simulator.cancel() is False

    def test_rearm_restarts_without_duplicate_timer(self):
        self.simulator.arm(5)
        self.scheduler.advance(2)

        self.simulator.arm(4)

        assert len(self.scheduler.pending) == 1
        self.scheduler.advance(3)
        assert self.rings == []
        self.scheduler.advance(1)
        assert len(self.rings) == 1

    def test_set_delay_clamped_and_used_for_next_arm(self):
        assert self.simulator.set_delay(1) == 3
        assert self.simulator.set_delay(45) == 45

        assert self.simulator.arm() == 45

    def test_tick_listener_sees_every_step(self):
        seen = []
        self.simulator.on_tick(lambda state: seen.append((state.armed, state.seconds_remaining)))

        self.simulator.arm(3)
        self.scheduler.advance(3)

        assert seen == [(True, 3), (True, 2), (True, 1), (False, 10)]

    def test_ring_fires_without_audio(self):
        context = AudioContext(output_factory=lambda: RecordingAudioOutput(fail_open=True))
        simulator = FakeCallSimulator(self.scheduler, context)
        rings = []
        simulator.on_ring(lambda: rings.append(True))

        simulator.arm(3)
        self.scheduler.advance(3)

        assert rings == [True]
        assert not simulator.is_armed

    def test_coexists_with_other_voice(self):
        siren_voice = self.audio.create_oscillator("sawtooth", 600, 0.05)
        self.simulator.arm(3)

        self.scheduler.advance(3)

        assert len(self.audio.active_voices) == 2
        assert len(self.outputs) == 1
        siren_voice.stop()

    def test_close_silences_beep(self):
        self.simulator.arm(3)
        self.scheduler.advance(3)

        self.simulator.close()

        assert self.audio.active_voices == []
        assert self.scheduler.pending == []

    def test_ring_fires_with_unplayable_beep(self):
        simulator = FakeCallSimulator(self.scheduler, self.audio, {'beep_waveform': 'triangle'})
        rings = []
        simulator.on_ring(lambda: rings.append(True))

        simulator.arm(3)
        self.scheduler.advance(3)

        assert rings == [True]
        assert not simulator.is_armed
        assert self.audio.active_voices == []
