# src/signalpost/demo/television.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from ..broadcast.center import BroadcastCenter
from ..broadcast.handlers import Notification
from ..core.observable import Observable


class Television(Observable):
    class Event(Enum):
        changed_channel = "changedChannel"
        powered_off = "poweredOff"
        powered_on = "poweredOn"

    def __init__(self, center: Optional[BroadcastCenter] = None):
        self.broadcast_center = center
        self._channel = 0
        self.powered = False

    @property
    def channel(self) -> int:
        return self._channel

    @channel.setter
    def channel(self, value: int) -> None:
        self._channel = value
        self.post(Television.Event.changed_channel, value)

    def power_on(self) -> None:
        self.powered = True
        self.post(Television.Event.powered_on)

    def power_off(self) -> None:
        self.powered = False
        self.post(Television.Event.powered_off)


class TelevisionWatcher:
    """Watches one television: a closure for power-on, a method for channel changes."""

    def __init__(self, tv: Television):
        self.tv = tv
        self.seen: List[str] = []

        # closure example
        self.tv.subscribe(
            Television.Event.powered_on,
            lambda notification: self.seen.append("TV was powered on."),
        )

        # method example
        self.tv.subscribe_method(Television.Event.changed_channel, self, "handle_channel_change")

    def handle_channel_change(self, notification: Notification) -> None:
        channel = notification.payload
        if not isinstance(channel, int):
            return
        self.seen.append(f"The TV is now on channel {channel}")
