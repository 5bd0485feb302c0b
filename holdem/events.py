from __future__ import annotations

import logging
from typing import Callable, List

from .models import Event

LOGGER = logging.getLogger("holdem.events")

Listener = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe channel the table reports every mutation to."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                LOGGER.exception("Listener failed on %s", event.ev)
