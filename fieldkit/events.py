"""Synchronous publish/subscribe used by fields and models.

Listeners are called in registration order, on the caller's stack, with the
payload tuple passed to ``emit``. A listener removed while a dispatch is
running still receives that dispatch if it was registered when it began.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "Listener",
    "EventEmitter",
    "VALID_CHANGE",
    "MODIFIED_CHANGE",
]

Listener = Callable[..., Any]

VALID_CHANGE = "validChange"
MODIFIED_CHANGE = "modifiedChange"


class EventEmitter:
    """Named-event listener registry.

    Example:
        emitter = EventEmitter()
        emitter.on("modifiedChange", lambda dirty, source: print(dirty))
        emitter.emit("modifiedChange", True, emitter)
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event`` and return it."""
        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` to be called at most once."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.__wrapped__ = listener  # type: ignore[attr-defined]
        self._listeners[event].append(wrapper)
        return listener

    def off(self, event: str, listener: Optional[Listener] = None) -> None:
        """Remove ``listener`` (or every listener) from ``event``.

        ``once`` registrations can be removed with the original callable.
        """
        if listener is None:
            self._listeners.pop(event, None)
            return
        registered = self._listeners.get(event)
        if not registered:
            return
        for index, candidate in enumerate(registered):
            # == so bound methods match a fresh reference to the same method
            if candidate == listener or getattr(candidate, "__wrapped__", None) == listener:
                del registered[index]
                break

    def listeners(self, event: str) -> List[Listener]:
        """Return a copy of the listeners registered for ``event``."""
        return list(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Deliver ``args`` to every listener of ``event``.

        Returns:
            True if at least one listener was called
        """
        # Snapshot: listeners added during dispatch wait for the next emit
        registered = list(self._listeners.get(event, ()))
        if _log_events():
            logger.debug("emit %s to %d listener(s): %r", event, len(registered), args)
        for listener in registered:
            listener(*args)
        return bool(registered)


def _log_events() -> bool:
    from fieldkit.settings import get_settings

    return get_settings().log_events
