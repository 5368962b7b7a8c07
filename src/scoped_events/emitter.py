"""Event emitter base class.

Usage:
    class Document(EventEmitter[str]):
        def save(self) -> None:
            ...
            self.emit("save", self)

    class Toolbar:
        def __init__(self, document: Document) -> None:
            document.on("save", Toolbar.refresh, self)

        def refresh(self, document: Document) -> None:
            ...

Listeners registered with a scope are invoked with the scope bound as their
first argument, the same way Python binds ``self``. Registering the plain
function together with its owner keeps ``off`` working, whereas a bound method
is a new object on every attribute access.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from itertools import count
import logging
import types
from typing import Any, ClassVar, Generic, TypeVar

from .config import EmitterOptions
from .exceptions import InvalidRelayTargetError

LOGGER = logging.getLogger(__name__)

EventNameT = TypeVar("EventNameT", bound=Hashable)

Callback = Callable[..., Any]

_BOUND_METHOD_TYPES = (types.MethodType, types.BuiltinMethodType, types.MethodWrapperType)


@dataclass(eq=False)
class Listener:
    """One registered callback for one event name."""

    callback: Callback
    scope: object | None = None
    once: bool = False
    seq: int = field(default=0, repr=False)

    def matches(self, callback: Callback, scope: object | None = None) -> bool:
        """Return True when this record was registered for ``callback`` (and ``scope``)."""
        if scope is not None and self.scope is not scope:
            return False
        return _same_callback(self.callback, callback)

    def invoke(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        if self.scope is None:
            self.callback(*args, **kwargs)
        else:
            self.callback(self.scope, *args, **kwargs)


def _same_callback(registered: Callback, candidate: Callback) -> bool:
    if registered is candidate:
        return True
    # Bound methods are rebuilt on each attribute access; their equality
    # compares __self__ by identity.
    if isinstance(registered, _BOUND_METHOD_TYPES) and isinstance(candidate, _BOUND_METHOD_TYPES):
        return registered == candidate
    return False


def _seq_of(listener: Listener) -> int:
    return listener.seq


class EventEmitter(Generic[EventNameT]):
    """Base class that lets subclasses register, remove and emit named events.

    State is created lazily, so subclasses are free not to call
    ``EventEmitter.__init__``. Dispatch is synchronous and reentrant: a
    listener may register, remove or emit from inside its own invocation.
    The emitter is not thread-safe.
    """

    emitter_options: ClassVar[EmitterOptions] = EmitterOptions()

    _listeners: dict[EventNameT, list[Listener]] | None = None
    _relay_targets: dict[int, EventEmitter[Any]] | None = None
    _seq_counter: count[int] | None = None
    _options: EmitterOptions | None = None

    def __init__(self, *, options: EmitterOptions | None = None) -> None:
        self._options = options

    @property
    def options(self) -> EmitterOptions:
        """Return the dispatch options in effect for this emitter."""
        if self._options is not None:
            return self._options
        return type(self).emitter_options

    def _ensure_listener_list(self, name: EventNameT) -> list[Listener]:
        if self._listeners is None:
            self._listeners = {}
        listeners = self._listeners.get(name)
        if listeners is None:
            listeners = self._listeners[name] = []
        return listeners

    def _next_seq(self) -> int:
        if self._seq_counter is None:
            self._seq_counter = count()
        return next(self._seq_counter)

    def _add(self, name: EventNameT, callback: Callback, scope: object | None, once: bool) -> None:
        listeners = self._ensure_listener_list(name)
        listeners.append(Listener(callback, scope, once, self._next_seq()))
        if self.options.log_dispatch:
            LOGGER.debug(
                "emitter.listener.added",
                extra={
                    "event": "emitter.listener.added",
                    "event_name": str(name),
                    "once": once,
                    "listener_count": len(listeners),
                },
            )

    def on(self, name: EventNameT, callback: Callback, scope: object | None = None) -> None:
        """Register ``callback`` for event ``name``.

        Args:
            name: Event name to listen for.
            callback: Invoked on every matching emission.
            scope: Optional owner, passed as the first argument on invocation
                and used to narrow ``off`` and ``has_listener``.
        """
        self._add(name, callback, scope, once=False)

    def once(self, name: EventNameT, callback: Callback, scope: object | None = None) -> None:
        """Register ``callback`` for the next emission of ``name`` only."""
        self._add(name, callback, scope, once=True)

    def off(self, name: EventNameT, callback: Callback, scope: object | None = None) -> None:
        """Remove every registration of ``callback`` for ``name``.

        When ``scope`` is given only registrations bound to that same object are
        removed. Unknown names and unmatched callbacks are ignored.
        """
        if not self._listeners:
            return
        listeners = self._listeners.get(name)
        if listeners is None:
            return

        kept = [item for item in listeners if not item.matches(callback, scope)]
        removed = len(listeners) - len(kept)
        # In place, so an ongoing dispatch sees the removal.
        listeners[:] = kept
        if not listeners:
            del self._listeners[name]

        if removed and self.options.log_dispatch:
            LOGGER.debug(
                "emitter.listener.removed",
                extra={
                    "event": "emitter.listener.removed",
                    "event_name": str(name),
                    "removed": removed,
                },
            )

    def remove_all_listeners(self) -> None:
        """Remove every listener for every event name."""
        self._listeners = {}

    def has_listener(self, name: EventNameT, callback: Callback, scope: object | None = None) -> bool:
        """Return True when ``callback`` (bound to ``scope``, if given) listens to ``name``."""
        if not self._listeners:
            return False
        return any(item.matches(callback, scope) for item in self._listeners.get(name, ()))

    def has_listeners_for_event(self, name: EventNameT) -> bool:
        """Return True when anything listens to ``name``."""
        return bool(self._listeners and self._listeners.get(name))

    def has_any_listeners(self) -> bool:
        """Return True when any event name has listeners."""
        return bool(self._listeners) and any(self._listeners.values())

    def listener_count(self, name: EventNameT) -> int:
        if not self._listeners:
            return 0
        return len(self._listeners.get(name, ()))

    def event_names(self) -> list[EventNameT]:
        if not self._listeners:
            return []
        return [name for name, listeners in self._listeners.items() if listeners]

    def emit(self, name: EventNameT, *args: Any, **kwargs: Any) -> None:
        """Invoke every listener of ``name`` in registration order.

        Listener exceptions propagate to the caller and abort the rest of the
        dispatch unless ``isolate_listener_errors`` is set. Relay targets
        receive the same event after the local listeners have run.
        """
        self._dispatch(name, args, kwargs, reached={id(self)})

    def _dispatch(
        self,
        name: EventNameT,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        reached: set[int],
    ) -> None:
        options = self.options
        invoked = 0
        cursor = -1
        listeners = self._listeners.get(name) if self._listeners else None
        # Listeners added while dispatching wait for the next emission.
        last_seq = listeners[-1].seq if listeners else -1

        while cursor < last_seq:
            # Re-read the live list each step; listeners may have replaced it.
            listeners = self._listeners.get(name) if self._listeners else None
            if not listeners:
                break
            index = bisect_right(listeners, cursor, key=_seq_of)
            if index >= len(listeners) or listeners[index].seq > last_seq:
                break

            item = listeners[index]
            cursor = item.seq
            if item.once:
                del listeners[index]
                if not listeners:
                    del self._listeners[name]

            invoked += 1
            if options.isolate_listener_errors:
                try:
                    item.invoke(args, kwargs)
                except Exception:
                    LOGGER.exception(
                        "emitter.listener.failed",
                        extra={
                            "event": "emitter.listener.failed",
                            "event_name": str(name),
                            "callback": getattr(item.callback, "__qualname__", repr(item.callback)),
                        },
                    )
            else:
                item.invoke(args, kwargs)

        if options.log_dispatch:
            LOGGER.debug(
                "emitter.dispatched",
                extra={
                    "event": "emitter.dispatched",
                    "event_name": str(name),
                    "listener_count": invoked,
                },
            )

        self._relay(name, args, kwargs, reached)

    def relay_to(self, target: EventEmitter[Any]) -> None:
        """Forward every event emitted here to ``target`` as well."""
        if not isinstance(target, EventEmitter):
            raise InvalidRelayTargetError(
                f"Relay target must be an EventEmitter, got {type(target).__name__}."
            )
        if target is self:
            raise InvalidRelayTargetError("An emitter cannot relay to itself.")
        if self._relay_targets is None:
            self._relay_targets = {}
        self._relay_targets.setdefault(id(target), target)

    def stop_relaying_to(self, target: EventEmitter[Any]) -> None:
        """Stop forwarding events to ``target``."""
        if self._relay_targets:
            self._relay_targets.pop(id(target), None)

    def is_relaying_to(self, target: EventEmitter[Any]) -> bool:
        return bool(self._relay_targets) and id(target) in self._relay_targets

    def _relay(
        self,
        name: EventNameT,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        reached: set[int],
    ) -> None:
        if not self._relay_targets:
            return
        for target in list(self._relay_targets.values()):
            if id(target) in reached or id(target) not in self._relay_targets:
                continue
            reached.add(id(target))
            target._dispatch(name, args, kwargs, reached)
