"""
Emergency Signal Service Module

Provides the personal-safety signalling capabilities:
- Location tracking with last-known-good caching
- Alert composition and deep-link construction
- Dispatch through native share or chat-app deep links
- Siren and fake-call audio state machines
"""

from .audio import AudioContext, Oscillator, SoundDeviceOutput, get_audio_context
from .composer import chat_link, compose, map_link, sms_link
from .contacts import ContactBook, IncidentLog
from .dispatcher import ShareCapability, SignalDispatcher
from .engine import EmergencySignalEngine
from .fake_call import FakeCallSimulator
from .location_tracker import LocationProvider, LocationTracker, PollingLocationProvider
from .siren import SirenPlayer, SirenStatus

__all__ = [
    'AudioContext',
    'Oscillator',
    'SoundDeviceOutput',
    'get_audio_context',
    'chat_link',
    'compose',
    'map_link',
    'sms_link',
    'ContactBook',
    'IncidentLog',
    'ShareCapability',
    'SignalDispatcher',
    'EmergencySignalEngine',
    'FakeCallSimulator',
    'LocationProvider',
    'LocationTracker',
    'PollingLocationProvider',
    'SirenPlayer',
    'SirenStatus'
]
