# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/broadcast/queues.py

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from typing import Callable, Optional, Protocol

log = logging.getLogger("signalpost")


class ExecutionContext(Protocol):
    """Where a handler with delivery affinity runs."""

    def is_current(self) -> bool: ...

    def submit(self, fn: Callable[[], None]) -> None: ...


class MainQueue:
    """
    FIFO queue drained by one owner thread (a UI loop, a main loop).

    submit() is safe from any thread; run_pending() belongs to the owner.
    """

    def __init__(self, owner: Optional[threading.Thread] = None, name: str = "main"):
        self.name = name
        self._owner_ident = (owner or threading.current_thread()).ident
        self._pending: "queue.SimpleQueue[Callable[[], None]]" = queue.SimpleQueue()

    def is_current(self) -> bool:
        return threading.get_ident() == self._owner_ident

    def submit(self, fn: Callable[[], None]) -> None:
        self._pending.put(fn)

    def pending(self) -> int:
        return self._pending.qsize()

    def run_pending(self) -> int:
        """
        Run what was queued when called; later submissions wait for the next call.
        A failing callable is logged and the rest still run.
        """
        ran = 0
        for _ in range(self._pending.qsize()):
            try:
                fn = self._pending.get_nowait()
            except queue.Empty:
                break
            try:
                fn()
            except Exception:
                log.warning("deferred call failed on queue %s", self.name, exc_info=True)
            ran += 1
        return ran


class LoopContext:
    """Defers onto an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def is_current(self) -> bool:
        try:
            return asyncio.get_running_loop() is self.loop
        except RuntimeError:
            return False

    def submit(self, fn: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(fn)


_main_queue: Optional[MainQueue] = None
_main_lock = threading.Lock()


def main_queue() -> MainQueue:
    """Process-wide queue bound to the interpreter's main thread."""
    global _main_queue
    with _main_lock:
        if _main_queue is None:
            _main_queue = MainQueue(owner=threading.main_thread())
        return _main_queue
