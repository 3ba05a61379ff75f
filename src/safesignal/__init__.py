"""
SafeSignal - Personal Safety Alerting

Tracks the user's location, composes an emergency message and hands it to
the best available messaging channel, with a siren and a simulated
incoming call as distraction aids.
"""

__version__ = "1.0.0"
__author__ = "SafeSignal Development Team"
