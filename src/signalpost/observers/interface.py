# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations
from typing import Protocol, runtime_checkable
from .events import BaseEvent


@runtime_checkable
class Observer(Protocol):
    """
    Receives a BroadcastCenter's diagnostics (Subscribed, Posted,
    HandlerFailed, ...) through an EventBus.

    notify() runs on whichever thread touched the center, sometimes while a
    post is being delivered. Exceptions it raises are dropped by the bus.
    """

    def notify(self, event: BaseEvent) -> None: ...
