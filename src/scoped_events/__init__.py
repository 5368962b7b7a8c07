"""Top-level package for scoped-events."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import EmitterOptions, emitter_options_from_config, load_config
from .emitter import EventEmitter, Listener
from .exceptions import (
    ConfigValidationError,
    InvalidRelayTargetError,
    ScopedEventsError,
)

if TYPE_CHECKING:
    from .logging_utils import configure_logging

__all__ = [
    "ConfigValidationError",
    "EmitterOptions",
    "EventEmitter",
    "InvalidRelayTargetError",
    "Listener",
    "ScopedEventsError",
    "configure_logging",
    "emitter_options_from_config",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import logging helpers so structlog loads only when logging is configured."""
    if name == "configure_logging":
        from .logging_utils import configure_logging

        return configure_logging
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
