"""
Alert data models for SafeSignal

Defines the structures shared by the location tracker, composer,
dispatcher and the timed audio state machines.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import uuid

from safesignal.core.errors import InvalidInputError


_NON_DIGITS = re.compile(r"\D")

WAVEFORMS = ("sine", "square", "sawtooth")


class DispatchOutcome(Enum):
    """Result of a dispatch attempt"""
    SENT = "sent"
    CANCELLED = "cancelled"
    FAILED = "failed"


class DispatchChannel(Enum):
    """Channel a dispatch went through"""
    NATIVE_SHARE = "native_share"
    DEEP_LINK = "deep_link"


class NoticeLevel(Enum):
    """Severity of a user-facing notice"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Coordinate:
    """A single resolved position fix"""
    lat: float
    lng: float
    timestamp: Optional[float] = field(default=None, compare=False)

    def as_tuple(self) -> Tuple[float, float]:
        return self.lat, self.lng


@dataclass(frozen=True)
class Contact:
    """Emergency contact; phone_digits is always non-empty digits"""
    display_name: str
    phone_digits: str

    def __post_init__(self):
        if not self.phone_digits or not self.phone_digits.isdigit():
            raise InvalidInputError(f"Invalid phone digits: {self.phone_digits!r}")

    @classmethod
    def create(cls, display_name: str, phone: str) -> 'Contact':
        """
        Build a contact from free-form input

        Args:
            display_name: Name shown in notifications (may be empty)
            phone: Phone number text; everything except digits is dropped

        Returns:
            Normalized Contact

        Raises:
            InvalidInputError: If the phone text contains no digits
        """
        digits = normalize_phone(phone)
        if not digits:
            raise InvalidInputError("Phone number must contain at least one digit")
        return cls(display_name=(display_name or "").strip(), phone_digits=digits)

    @property
    def label(self) -> str:
        return self.display_name or self.phone_digits

    def to_dict(self) -> Dict[str, str]:
        return {'display_name': self.display_name, 'phone_digits': self.phone_digits}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Contact':
        return cls.create(data.get('display_name', ''), str(data.get('phone_digits', '')))


def normalize_phone(phone: Optional[str]) -> str:
    """Strip everything but decimal digits"""
    return _NON_DIGITS.sub("", phone or "")


@dataclass(frozen=True)
class AlertContext:
    """Everything needed to render an alert message"""
    coordinate: Optional[Coordinate] = None
    user_name: Optional[str] = None
    note: str = ""
    recipients: Tuple[Contact, ...] = ()


@dataclass
class TrackingSession:
    """A live, cancellable subscription to position updates"""
    active: bool = False
    handle: Any = None
    started_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class SirenState:
    """Siren state; phase only advances while on"""
    on: bool = False
    phase_accumulator: float = 0.0
    oscillator: Any = None
    sweep_handle: Any = None


@dataclass
class FakeCallState:
    """Fake-call countdown state"""
    armed: bool = False
    seconds_remaining: int = 0
    delay: int = 0


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a single dispatch attempt"""
    outcome: DispatchOutcome
    channel: DispatchChannel
    text: str
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == DispatchOutcome.SENT


@dataclass(frozen=True)
class ContactLinks:
    """Pre-filled deep links for one contact"""
    contact: Contact
    sms: str
    chat: str


@dataclass(frozen=True)
class Notice:
    """Short human-readable message for the UI"""
    level: NoticeLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class IncidentRecord:
    """One SOS press as kept in the incident log"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)
    note: str = ""
    text: str = ""
    outcome: Optional[DispatchOutcome] = None
    coordinate: Optional[Coordinate] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary"""
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'note': self.note,
            'text': self.text,
            'outcome': self.outcome.value if self.outcome else None,
            'coordinate': [self.coordinate.lat, self.coordinate.lng] if self.coordinate else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IncidentRecord':
        """Create record from dictionary"""
        coordinate = data.get('coordinate')
        outcome = data.get('outcome')
        return cls(
            id=data.get('id') or str(uuid.uuid4()),
            timestamp=datetime.fromisoformat(data['timestamp']) if data.get('timestamp') else datetime.utcnow(),
            note=data.get('note', ''),
            text=data.get('text', ''),
            outcome=DispatchOutcome(outcome) if outcome else None,
            coordinate=Coordinate(float(coordinate[0]), float(coordinate[1])) if coordinate else None
        )


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view of engine state for re-rendering"""
    coordinate: Optional[Coordinate]
    tracking_active: bool
    siren_on: bool
    fake_call_armed: bool
    fake_call_seconds_remaining: int
    fake_call_delay: int
    last_dispatch: Optional[DispatchResult]
    user_name: Optional[str]
    contacts: Tuple[Contact, ...]
