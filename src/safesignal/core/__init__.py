"""
Core module for SafeSignal

Configuration, logging, error taxonomy, timer scheduling and persistence.
"""

from .errors import (
    SignalError,
    PermissionDeniedError,
    CapabilityUnavailableError,
    GeolocationUnsupportedError,
    AudioUnavailableError,
    SignalTimeoutError,
    CancelledByUserError,
    ShareCancelledError,
    InvalidInputError,
    LocationUnavailableError,
    LocationPermissionError,
    LocationTimeoutError,
    StorageError
)
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .storage import KeyValueStore

__all__ = [
    'SignalError',
    'PermissionDeniedError',
    'CapabilityUnavailableError',
    'GeolocationUnsupportedError',
    'AudioUnavailableError',
    'SignalTimeoutError',
    'CancelledByUserError',
    'ShareCancelledError',
    'InvalidInputError',
    'LocationUnavailableError',
    'LocationPermissionError',
    'LocationTimeoutError',
    'StorageError',
    'AsyncioScheduler',
    'Scheduler',
    'TimerHandle',
    'KeyValueStore'
]
