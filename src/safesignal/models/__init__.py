"""
Data models for SafeSignal

Contains the data classes shared across the signal engine.
"""

from .alert import (
    Coordinate, Contact, AlertContext, TrackingSession, SirenState,
    FakeCallState, DispatchOutcome, DispatchChannel, DispatchResult,
    ContactLinks, Notice, NoticeLevel, IncidentRecord, EngineSnapshot,
    normalize_phone
)

__all__ = [
    'Coordinate', 'Contact', 'AlertContext', 'TrackingSession', 'SirenState',
    'FakeCallState', 'DispatchOutcome', 'DispatchChannel', 'DispatchResult',
    'ContactLinks', 'Notice', 'NoticeLevel', 'IncidentRecord', 'EngineSnapshot',
    'normalize_phone'
]
