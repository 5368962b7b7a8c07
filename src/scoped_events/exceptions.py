"""Domain exception hierarchy for scoped-events."""

from __future__ import annotations


class ScopedEventsError(RuntimeError):
    """Base class for all errors raised by the emitter package."""


class InvalidRelayTargetError(ScopedEventsError, TypeError):
    """Raised when an emitter is asked to relay to something it cannot relay to."""


class ConfigValidationError(ScopedEventsError):
    """Raised when configuration cannot be validated safely."""
