# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/signalpost/core/observable.py

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Optional, Type, Union

from ..broadcast.center import BroadcastCenter, SubscriptionToken
from ..broadcast.handlers import ClosureHandler, Notification, make_bound_handler
from ..broadcast.queues import ExecutionContext
from ..errors import EventVocabularyError
from .runtime import default_center

log = logging.getLogger("signalpost")


class Observable:
    """
    Capability for entities that post typed events.

    A subclass declares its vocabulary as a nested ``Event`` enum. Each member
    maps to a channel name through ``channel_name()`` (the member's string
    value by default); the mapping is checked for collisions when the class
    is created. Subscriptions and posts are scoped to the entity instance.

    Usage:
        class Door(Observable):
            class Event(Enum):
                opened = "opened"
                closed = "closed"

        door = Door()
        token = door.subscribe(Door.Event.opened, lambda n: print(n.payload))
        door.post(Door.Event.opened, 42)
        door.unsubscribe(token)

    Set ``broadcast_center`` on the class or the instance to route through a
    specific center; otherwise the process default is used.
    """

    Event: ClassVar[Optional[Type[Enum]]] = None
    broadcast_center: Optional[BroadcastCenter] = None

    _channel_map: ClassVar[Dict[Enum, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._channel_map = _build_channel_map(cls)

    # ==================== VOCABULARY ====================

    @classmethod
    def channel_name(cls, event: Enum) -> Optional[str]:
        """Channel name for one member, or None when it has no usable string form."""
        value = event.value
        if isinstance(value, str) and value.strip():
            return value
        return None

    @classmethod
    def channel_names(cls) -> Dict[Enum, str]:
        return dict(cls._channel_map)

    def _resolve(self, event: Any) -> Optional[str]:
        vocabulary = type(self).Event
        if vocabulary is None or not isinstance(event, vocabulary):
            self._center().report_unresolved(self, event, "not a member of the event vocabulary")
            return None
        name = self._channel_map.get(event)
        if name is None:
            self._center().report_unresolved(self, event, "no channel name")
        return name

    def _center(self) -> BroadcastCenter:
        return self.broadcast_center or default_center()

    # ==================== SUBSCRIBE / POST ====================

    def subscribe(
        self,
        event: Enum,
        handler: Callable[[Notification], Any],
        *,
        context: Optional[ExecutionContext] = None,
    ) -> Optional[SubscriptionToken]:
        """Call handler with each Notification posted for event on this entity."""
        name = self._resolve(event)
        if name is None:
            return None
        return self._center().register(name, self, ClosureHandler(handler), context=context)

    def subscribe_method(
        self,
        event: Enum,
        receiver: Any,
        method: Union[str, Callable[..., Any]],
        *,
        context: Optional[ExecutionContext] = None,
    ) -> Optional[SubscriptionToken]:
        """
        Call ``receiver.method(notification)`` for each post of event.

        The method is looked up now, not at delivery. The receiver is held
        weakly; once it is collected the subscription goes away with it.
        """
        name = self._resolve(event)
        if name is None:
            return None
        handler = make_bound_handler(receiver, method)
        if handler is None:
            self._center().report_unresolved(
                self, event, f"{type(receiver).__name__} has no method {method!r}"
            )
            return None
        return self._center().register(name, self, handler, context=context)

    def unsubscribe(self, token: Optional[SubscriptionToken]) -> None:
        self._center().unregister(token)

    def post(self, event: Enum, payload: Any = None) -> None:
        name = self._resolve(event)
        if name is None:
            return
        self._center().dispatch(name, self, payload)


def _build_channel_map(cls: Type[Observable]) -> Dict[Enum, str]:
    vocabulary = cls.__dict__.get("Event", getattr(cls, "Event", None))
    if vocabulary is None:
        return {}
    if not (isinstance(vocabulary, type) and issubclass(vocabulary, Enum)):
        raise EventVocabularyError(f"{cls.__name__}.Event must be an Enum, got {vocabulary!r}")

    mapping: Dict[Enum, str] = {}
    owners: Dict[str, Enum] = {}
    for member in vocabulary:
        name = cls.channel_name(member)
        if not isinstance(name, str) or not name.strip():
            log.warning("%s.%s has no channel name; posts and subscriptions for it are dropped",
                        cls.__name__, member.name)
            continue
        if name in owners:
            raise EventVocabularyError(
                f"{cls.__name__}: {owners[name].name} and {member.name} both map to channel '{name}'"
            )
        owners[name] = member
        mapping[member] = name
    return mapping
