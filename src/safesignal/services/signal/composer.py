"""
Alert Message Composition

Pure rendering of an AlertContext into share text, plus the deep-link
builders used by the dispatcher. Nothing here performs I/O.
"""

from typing import Optional
from urllib.parse import quote

import numpy as np

from safesignal.models.alert import AlertContext, Coordinate


DEFAULT_MAP_SERVICE = "maps.google.com"
DEFAULT_CHAT_SERVICE = "wa.me"

HEADLINE = "🚨 SOS! I need help."
NO_LOCATION_TEXT = "🚨 SOS! I need help. My location is unavailable."

# Characters JavaScript's encodeURIComponent leaves alone besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*'()"


def encode_component(text: str) -> str:
    """Percent-encode text for use as a single URI query value"""
    return quote(text, safe=_URI_COMPONENT_SAFE)


def map_link(coordinate: Coordinate, service: str = DEFAULT_MAP_SERVICE) -> str:
    """Map deep link built from the unrounded coordinate, never in exponent notation"""
    lat = np.format_float_positional(coordinate.lat, trim="-")
    lng = np.format_float_positional(coordinate.lng, trim="-")
    return f"https://{service}/?q={lat},{lng}"


def sms_link(phone_digits: str, text: str) -> str:
    """SMS deep link pre-filled with text"""
    return f"sms:{phone_digits}?&body={encode_component(text)}"


def chat_link(text: str, phone_digits: Optional[str] = None,
              service: str = DEFAULT_CHAT_SERVICE) -> str:
    """Chat-app deep link, optionally addressed to one number"""
    return f"https://{service}/{phone_digits or ''}?text={encode_component(text)}"


def compose(context: AlertContext, map_service: str = DEFAULT_MAP_SERVICE) -> str:
    """
    Render an alert into display/share text

    Args:
        context: Alert context to render
        map_service: Host used for the map deep link

    Returns:
        Message text, trimmed of surrounding whitespace
    """
    coordinate = context.coordinate
    if coordinate is None:
        lines = [NO_LOCATION_TEXT]
    else:
        lines = [
            HEADLINE,
            f"📍 Location: {coordinate.lat:.5f}, {coordinate.lng:.5f}",
            f"🗺️ {map_link(coordinate, map_service)}",
        ]

    if context.user_name and context.user_name.strip():
        lines.insert(0, f"👤 {context.user_name.strip()}")

    if context.note:
        lines.append(f"Note: {context.note}")

    if context.recipients:
        lines.append("Notify: " + ", ".join(contact.label for contact in context.recipients))

    return "\n".join(lines).strip()
