"""
Error taxonomy for SafeSignal

Components raise these typed errors; the engine converts them into
user-facing notices at its boundary.
"""


class SignalError(Exception):
    """Base class for all SafeSignal errors"""
    pass


class PermissionDeniedError(SignalError):
    """A host capability (location, audio) was refused"""
    pass


class CapabilityUnavailableError(SignalError):
    """A host capability is absent"""
    pass


class GeolocationUnsupportedError(CapabilityUnavailableError):
    """Continuous position updates are not supported by the host"""
    pass


class AudioUnavailableError(CapabilityUnavailableError):
    """The audio output could not be opened"""
    pass


class SignalTimeoutError(SignalError):
    """An operation exceeded its time bound"""
    pass


class CancelledByUserError(SignalError):
    """The user aborted a dialog; not a failure"""
    pass


class ShareCancelledError(CancelledByUserError):
    """The user dismissed the native share sheet"""
    pass


class InvalidInputError(SignalError, ValueError):
    """Input rejected at a boundary before entering the data model"""
    pass


class LocationUnavailableError(SignalError):
    """No position fix could be obtained"""
    pass


class LocationPermissionError(LocationUnavailableError, PermissionDeniedError):
    """Location access was refused"""
    pass


class LocationTimeoutError(LocationUnavailableError, SignalTimeoutError):
    """The position fix did not arrive in time"""
    pass


class StorageError(SignalError):
    """Persistence write failed"""
    pass
