# src/signalpost/observers/dispatcher.py
from __future__ import annotations
from typing import List
from .events import BaseEvent
from .interface import Observer

class EventBus:
    def __init__(self, observers: List[Observer] = None):
        self._observers: List[Observer] = []
        for ob in observers or []:
            self.add(ob)

    def add(self, observer: Observer) -> None:
        if not isinstance(observer, Observer):
            raise TypeError(f"observer needs a notify(event) method, got {type(observer).__name__}")
        self._observers.append(observer)

    def __len__(self) -> int:
        return len(self._observers)

    def emit(self, event: BaseEvent) -> None:
        for ob in list(self._observers):
            try:
                ob.notify(event)
            except Exception:
                pass  # diagnostics must not break delivery
