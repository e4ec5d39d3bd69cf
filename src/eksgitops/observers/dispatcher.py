# src/eksgitops/observers/dispatcher.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol

from .events import BaseEvent

log = logging.getLogger("eksgitops")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    """Fans each lifecycle event out to every observer, in registration order."""

    def __init__(self, observers: Optional[Iterable[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:  # a broken observer never fails the run
                log.debug(f"observer {type(ob).__name__} failed on {type(event).__name__}: {exc}")
